"""Minimal RFC 6570 URI templates for resource template matching.

Supports simple string expansion (``{var}``) and reserved expansion
(``{+var}``), which covers the common shapes of resource URIs such as
``weather://{city}/current`` or ``file:///{+path}``.
"""

import re
from urllib.parse import quote, unquote

_EXPRESSION = re.compile(r"\{(\+?)([A-Za-z0-9_.]+)\}")

# Characters left unescaped by reserved expansion (RFC 6570, section 1.5)
_RESERVED = ":/?#[]@!$&'()*+,;="


class UriTemplate:
    """A compiled URI template.

    Attributes:
        template: The template string
        variables: Variable names in order of appearance
    """

    def __init__(self, template: str) -> None:
        self.template = template
        self.variables: list[str] = []
        self._reserved: set[str] = set()

        pattern_parts: list[str] = []
        position = 0
        for match in _EXPRESSION.finditer(template):
            operator, name = match.groups()
            if name in self.variables:
                raise ValueError(
                    f"Variable '{name}' appears more than once in template {template!r}"
                )
            pattern_parts.append(re.escape(template[position : match.start()]))
            group = f"v{len(self.variables)}"
            if operator == "+":
                self._reserved.add(name)
                pattern_parts.append(f"(?P<{group}>.+?)")
            else:
                pattern_parts.append(f"(?P<{group}>[^/?#]+?)")
            self.variables.append(name)
            position = match.end()
        pattern_parts.append(re.escape(template[position:]))

        if "{" in _EXPRESSION.sub("", template):
            raise ValueError(f"Unsupported expression in URI template {template!r}")

        self._pattern = re.compile("^" + "".join(pattern_parts) + "$")

    def match(self, uri: str) -> dict[str, str] | None:
        """Match a URI against this template.

        Args:
            uri: Candidate URI

        Returns:
            Variable bindings (percent-decoded), or None if the URI does not match
        """
        found = self._pattern.match(uri)
        if found is None:
            return None
        return {
            name: unquote(found.group(f"v{index}"))
            for index, name in enumerate(self.variables)
        }

    def expand(self, **variables: str) -> str:
        """Build a URI from variable values."""

        def replace(match: re.Match[str]) -> str:
            operator, name = match.groups()
            if name not in variables:
                raise KeyError(f"Missing value for URI template variable '{name}'")
            safe = _RESERVED if operator == "+" else ""
            return quote(str(variables[name]), safe=safe)

        return _EXPRESSION.sub(replace, self.template)

    def __repr__(self) -> str:
        return f"UriTemplate({self.template!r})"

    def __str__(self) -> str:
        return self.template
