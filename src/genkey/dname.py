"""Distinguished names: ordered name/value pairs with comma escaping.

Rendered form: ``CN=Jane Doe ,O=Example\\, Inc``. Each name and value has
its commas escaped as ``\\,``; entries are joined with the fixed ``" ,"``
separator.
"""

from dataclasses import dataclass

DELIMITER = ","
ESCAPE = "\\"
SEPARATOR = " " + DELIMITER


def encode(string: str) -> str:
    """Escape every comma in *string*. Strings without one come back as-is."""
    if DELIMITER not in string:
        return string
    return string.replace(DELIMITER, ESCAPE + DELIMITER)


def decode(string: str) -> str:
    """Undo :func:`encode`.

    ``decode(encode(s)) == s`` for every string, backslashes included:
    each comma in encoded text was escaped by :func:`encode`, so every
    ``\\,`` found here is one it added.
    """
    if ESCAPE + DELIMITER not in string:
        return string
    return string.replace(ESCAPE + DELIMITER, DELIMITER)


def _split_unescaped(text: str) -> list[str]:
    parts = []
    start = 0
    for idx, char in enumerate(text):
        if char == DELIMITER and (idx == 0 or text[idx - 1] != ESCAPE):
            parts.append(text[start:idx])
            start = idx + 1
    parts.append(text[start:])
    return parts


@dataclass(frozen=True)
class DnameParam:
    name: str
    value: str

    def render(self) -> str:
        return f"{encode(self.name)}={encode(self.value)}"


@dataclass(frozen=True)
class DistinguishedName:
    params: tuple[DnameParam, ...] = ()

    @classmethod
    def of(cls, *pairs: tuple[str, str]) -> "DistinguishedName":
        """Build from ``(name, value)`` tuples, keeping their order."""
        return cls(tuple(DnameParam(name, value) for name, value in pairs))

    @classmethod
    def parse(cls, text: str) -> "DistinguishedName":
        """Parse a rendered or hand-written dname.

        Splits on unescaped commas, drops the single space the separator
        puts before each comma, and trims whitespace around names. Entries
        without ``=`` get an empty value.
        """
        if not text.strip():
            return cls()
        entries = _split_unescaped(text)
        params = []
        for idx, entry in enumerate(entries):
            if idx < len(entries) - 1 and entry.endswith(" "):
                entry = entry[:-1]
            name, _, value = entry.partition("=")
            params.append(DnameParam(decode(name.strip()), decode(value)))
        return cls(tuple(params))

    def render(self) -> str:
        return SEPARATOR.join(p.render() for p in self.params)

    def __str__(self) -> str:
        return self.render()

    def __len__(self) -> int:
        return len(self.params)

    def __iter__(self):
        return iter(self.params)
