"""Resource name normalization.

Turns arbitrary strings (provider names, cloud resource IDs) into names
that are valid as the NAME segment of a state key.
"""

from __future__ import annotations

import re

# A leading non-alphanumeric run, or any run of characters outside [0-9A-Za-z-].
_DEFAULT_PATTERN = r"^[^0-9A-Za-z][^0-9A-Za-z-]*|[^0-9A-Za-z-]+"


class NameNormalizer:
    """Compiled name normalizer.

    Construct once and pass it to the code that needs it::

        normalizer = NameNormalizer()
        normalizer.make_name("/subscriptions/x/resourceGroups/rg")
    """

    def __init__(self, pattern: str = _DEFAULT_PATTERN, replacement: str = "_") -> None:
        self._pattern = re.compile(pattern)
        self._replacement = replacement

    def make_name(self, text: str) -> str:
        """Replace every invalid character run in *text* with the replacement."""
        if not text:
            msg = "Cannot make a resource name from an empty string"
            raise ValueError(msg)
        return self._pattern.sub(self._replacement, text)
