"""
Ersatz Value Predicates

Small composable predicates over plain values, each carrying a
human-readable description used by the unmatched-request report.
"""

from typing import Any, Callable, Iterable


class Predicate:
    """
    Boolean test over a value, with a description.

    Predicates compose with `&`, `|` and `~`.

    Example:
        accept = starts_with('application/') & ~equal_to('application/xml')
        accept('application/json')  # True
    """

    def __init__(self, test: Callable[[Any], bool], description: str = 'a configured predicate'):
        self._test = test
        self.description = description

    def matches(self, value: Any) -> bool:
        return bool(self._test(value))

    def __call__(self, value: Any) -> bool:
        return self.matches(value)

    def __and__(self, other: 'Predicate') -> 'Predicate':
        return all_of(self, other)

    def __or__(self, other: 'Predicate') -> 'Predicate':
        return any_of(self, other)

    def __invert__(self) -> 'Predicate':
        return not_(self)

    def __str__(self) -> str:
        return self.description

    def __repr__(self) -> str:
        return f"Predicate({self.description!r})"


def predicate_of(value: Any) -> Predicate:
    """Wrap a value as a predicate: predicates pass through, callables are wrapped, anything else means equality."""
    if isinstance(value, Predicate):
        return value
    if callable(value) and not isinstance(value, type):
        return matching(value)
    return equal_to(value)


def matching(test: Callable[[Any], bool], description: str = 'a configured predicate') -> Predicate:
    return Predicate(test, description)


def anything() -> Predicate:
    return Predicate(lambda value: True, 'anything')


def equal_to(expected: Any) -> Predicate:
    return Predicate(lambda value: value == expected, repr(expected))


def not_(predicate: Any) -> Predicate:
    inner = predicate_of(predicate)
    return Predicate(lambda value: not inner(value), f"not {inner}")


def is_none() -> Predicate:
    return Predicate(lambda value: value is None, 'None')


def not_none() -> Predicate:
    return Predicate(lambda value: value is not None, 'not None')


def starts_with(prefix: str) -> Predicate:
    return Predicate(
        lambda value: isinstance(value, str) and value.startswith(prefix),
        f"a string starting with {prefix!r}"
    )


def ends_with(suffix: str) -> Predicate:
    return Predicate(
        lambda value: isinstance(value, str) and value.endswith(suffix),
        f"a string ending with {suffix!r}"
    )


def contains_string(fragment: str) -> Predicate:
    return Predicate(
        lambda value: isinstance(value, str) and fragment in value,
        f"a string containing {fragment!r}"
    )


def greater_than(bound: Any) -> Predicate:
    return Predicate(lambda value: value > bound, f"a value greater than {bound!r}")


def greater_than_or_equal_to(bound: Any) -> Predicate:
    return Predicate(lambda value: value >= bound, f"a value equal to or greater than {bound!r}")


def less_than(bound: Any) -> Predicate:
    return Predicate(lambda value: value < bound, f"a value less than {bound!r}")


def all_of(*predicates: Any) -> Predicate:
    inner = [predicate_of(p) for p in predicates]
    return Predicate(
        lambda value: all(p(value) for p in inner),
        '(' + ' and '.join(str(p) for p in inner) + ')'
    )


def any_of(*predicates: Any) -> Predicate:
    inner = [predicate_of(p) for p in predicates]
    return Predicate(
        lambda value: any(p(value) for p in inner),
        '(' + ' or '.join(str(p) for p in inner) + ')'
    )


def has_item(item: Any) -> Predicate:
    """Collection contains at least one element matching `item`."""
    inner = predicate_of(item)

    def _test(values: Iterable[Any]) -> bool:
        return values is not None and any(inner(value) for value in values)

    return Predicate(_test, f"a collection containing {inner}")


def contains(*items: Any) -> Predicate:
    """Collection holds exactly these elements in this order."""
    inner = [predicate_of(item) for item in items]

    def _test(values: Iterable[Any]) -> bool:
        values = list(values or ())
        return len(values) == len(inner) and all(p(v) for p, v in zip(inner, values))

    return Predicate(_test, '[' + ', '.join(str(p) for p in inner) + ']')


def contains_in_any_order(*items: Any) -> Predicate:
    """Collection holds exactly these elements, in any order."""
    inner = [predicate_of(item) for item in items]

    def _test(values: Iterable[Any]) -> bool:
        remaining = list(values or ())
        if len(remaining) != len(inner):
            return False
        for predicate in inner:
            for index, value in enumerate(remaining):
                if predicate(value):
                    del remaining[index]
                    break
            else:
                return False
        return True

    return Predicate(_test, 'iterable over [' + ', '.join(str(p) for p in inner) + '] in any order')
