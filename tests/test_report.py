"""
Tests for Ersatz unmatched reports
"""

from ersatz.encdec import default_decoders
from ersatz.mock import (
    ClientRequest,
    Expectations,
    Requirements,
    UnmatchedRequestReport,
    UnmatchedWsReport,
    WebSocketExpectation,
)


def make_request():
    return ClientRequest.build(
        method='GET',
        path='/users',
        headers=[('Accept', 'application/json'), ('Content-Type', 'text/plain')],
        query_string='page=2',
        cookies={'session': 'abc'},
        body=b'hello'
    )


class TestUnmatchedRequestReport:
    """Test the request report."""

    def test_expectation_results(self):
        """Test each matcher outcome is captured."""
        expectations = Expectations(default_decoders())
        expectations.get('/other')
        expectations.get('/users').header('Accept', 'text/html')

        report = UnmatchedRequestReport.build(make_request(), expectations.requests)

        assert [(r.matched, r.failed) for r in report.expectations] == [(1, 1), (2, 1)]

    def test_render(self):
        """Test the rendered layout."""
        expectations = Expectations(default_decoders())
        expectations.get('/other')

        text = UnmatchedRequestReport.build(make_request(), expectations.requests).render()

        assert text.startswith('# Unmatched Request')
        assert 'HTTP GET /users ? page=2' in text
        assert 'Accept' in text
        assert 'session: abc' in text
        assert '# Content-Type: text/plain' in text
        assert 'hello' in text
        assert 'Expectation 0 (2 matchers):' in text
        assert '✓ HTTP method is (GET)' in text
        assert "X Path matches '/other'" in text
        assert '(2 matchers: 1 matched, 1 failed)' in text

    def test_requirements_section(self):
        """Test failed requirements are listed."""
        requirements = Requirements()
        requirements.that('GET', '*').header('Authorization', 'token')
        request = make_request()

        text = UnmatchedRequestReport.build(request, [], requirements.failures(request)).render()

        assert '# Requirements' in text
        assert 'Authorization' in text


class TestUnmatchedWsReport:
    """Test the WebSocket report."""

    def test_render(self):
        """Test the rendered WebSocket state."""
        expectation = WebSocketExpectation('/ws')
        expectation.receives('ping')
        expectation.receives('other')
        expectation.connect()
        expectation.find_match('ping')

        text = UnmatchedWsReport(expectation.snapshot('nope')).render()

        assert 'Path: /ws' in text
        assert '✓ connected' in text
        assert "Received (text): 'nope'" in text
        assert "✓ text: 'ping' (received 1 times)" in text
        assert "X text: 'other' (received 0 times)" in text
        assert '(2 messages: 1 satisfied, 1 unsatisfied)' in text
