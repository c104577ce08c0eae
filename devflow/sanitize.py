"""Reason scrubbing for reviewer availability failures.

Availability checks talk to local services and read the environment, so their
failure messages can carry filesystem paths, host:port pairs and URLs with
query strings. Those details are removed before a reason is surfaced.
"""

import re
from dataclasses import dataclass, field


@dataclass
class ReasonScrubber:
    """Remove local filesystem and network details from text.

    Patterns are applied in order; URLs are handled before bare host:port
    pairs so that the scheme survives.
    """

    patterns: list[tuple[str, str]] = field(default_factory=lambda: [
        # file:// URLs are local paths
        (r'\bfile://\S+', '<path>'),
        # Query strings on URLs (may carry tokens)
        (r'(https?://[^\s?#]+)\?[^\s#]*', r'\1'),
        # host:port inside URLs
        (r'(https?://)[\w.-]+:\d{2,5}', r'\1<host>'),
        # Bare IPv4:port
        (r'\b\d{1,3}(?:\.\d{1,3}){3}:\d{2,5}\b', '<host>'),
        # Bare hostname:port (localhost:11434, ollama.internal:8080)
        (r'\b(?:localhost|[a-zA-Z][\w-]*(?:\.[\w-]+)+):\d{2,5}\b', '<host>'),
        # Home-relative paths
        (r'~/[^\s\'"]+', '<path>'),
        # Windows absolute paths
        (r'\b[A-Za-z]:\\[^\s\'"]+', '<path>'),
        # POSIX absolute paths, not part of a URL
        (r'(?<![\w:/.>])/[\w.-]+(?:/[\w.-]+)*/?', '<path>'),
    ])

    def scrub(self, text: str) -> str:
        """Return text with paths, host:port pairs and query strings removed."""
        if not text:
            return text

        result = text
        for pattern, replacement in self.patterns:
            result = re.sub(pattern, replacement, result)
        return result


_default_scrubber = ReasonScrubber()


def scrub_reason(reason: str) -> str:
    """Scrub an availability reason with the default scrubber."""
    return _default_scrubber.scrub(reason)
