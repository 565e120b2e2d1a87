"""
Ersatz Global Requirements

Requirements apply to every request whose method and path they cover.
A request failing any applicable requirement is treated as unmatched,
whatever expectations exist.
"""

from typing import Any, List

from .expectations import MatcherSet
from .matcher import HttpMethod, RequestMatcher, method_matcher, path_matcher
from .request import ClientRequest


class Requirement(MatcherSet):
    """Matchers that must hold for requests with a given method and path."""

    def __init__(self, method: Any, path: Any):
        self._scope = [method_matcher(method), path_matcher(path)]
        self.matchers: List[RequestMatcher] = []

    def applies_to(self, request: ClientRequest) -> bool:
        return all(matcher(request) for matcher in self._scope)

    def __str__(self) -> str:
        scope = ', '.join(m.description for m in self._scope)
        checks = ', '.join(m.description for m in self.matchers) or 'nothing'
        return f"Requirement ({scope}) requires ({checks})"


class Requirements:
    """
    Collection of global requirements.

    Example:
        server.requirements().that(HttpMethod.ANY, '*').header('Authorization', 'Bearer x')
    """

    def __init__(self):
        self._requirements: List[Requirement] = []

    def that(self, method: Any, path: Any) -> Requirement:
        requirement = Requirement(HttpMethod.of(method), path)
        self._requirements.append(requirement)
        return requirement

    def check(self, request: ClientRequest) -> bool:
        """True when every applicable requirement is met (or none apply)."""
        return all(r.matches(request) for r in self._requirements if r.applies_to(request))

    def failures(self, request: ClientRequest) -> List[Requirement]:
        """Applicable requirements the request does not meet."""
        return [r for r in self._requirements if r.applies_to(request) and not r.matches(request)]

    def clear(self) -> None:
        self._requirements.clear()

    def __len__(self) -> int:
        return len(self._requirements)
