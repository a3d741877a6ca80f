"""Domain name matchers: sub-domain, full, keyword, regexp and a mix of them.

Every matcher is fqdn-insensitive and case-insensitive: "Google.com." and
"google.com" give the same outcome. ``match`` returns a ``(value, found)``
tuple so that a stored ``None`` can be told apart from a miss.
"""

from __future__ import annotations

import re
from typing import (
    Callable,
    Dict,
    Generic,
    Iterable,
    Iterator,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
)

T = TypeVar("T")

MATCHER_FULL = "full"
MATCHER_DOMAIN = "domain"
MATCHER_REGEXP = "regexp"
MATCHER_KEYWORD = "keyword"

ParseStringFunc = Callable[[str], Tuple[str, T]]


class NoDefaultMatcherError(ValueError):
    """A pattern had no type prefix and no default matcher is set."""

    def __init__(self, message: str = "default matcher is not set") -> None:
        super().__init__(message)


class Matcher(Protocol[T]):
    def match(self, s: str) -> Tuple[Optional[T], bool]: ...


class WriteableMatcher(Matcher[T], Protocol[T]):
    def add(self, pattern: str, value: T) -> None: ...


def trim_dot(s: str) -> str:
    """Remove one trailing '.' if present."""
    return s[:-1] if s.endswith(".") else s


def normalize_domain(s: str) -> str:
    """Lower-case ``s`` and drop its trailing dot: "GOOGLE.com." -> "google.com"."""
    return trim_dot(s).lower()


class ReverseDomainScanner:
    """Walks the labels of a domain from the last one to the first."""

    def __init__(self, s: str) -> None:
        self._s = trim_dot(s)
        self._p = len(self._s)
        self._t = len(self._s)

    def scan(self) -> bool:
        """Advance to the previous label; return False when none is left."""
        if self._p <= 0:
            return False
        self._t = self._p
        self._p = self._s.rfind(".", 0, self._p)
        return True

    def next_label_offset(self) -> int:
        """Offset of the current label in the (non-fqdn) domain."""
        return self._p + 1

    def next_label(self) -> str:
        """The current label."""
        return self._s[self._p + 1 : self._t]

    def __iter__(self) -> Iterator[str]:
        while self.scan():
            yield self.next_label()


class _LabelNode(Generic[T]):
    __slots__ = ("children", "value", "has_value")

    def __init__(self) -> None:
        self.children: Dict[str, _LabelNode[T]] = {}
        self.value: Optional[T] = None
        self.has_value = False

    def store(self, value: T) -> None:
        self.value = value
        self.has_value = True

    def count(self) -> int:
        return sum(
            child.count() + (1 if child.has_value else 0)
            for child in self.children.values()
        )


class SubDomainMatcher(Generic[T]):
    """Matches a domain and all of its sub-domains; the deepest rule wins."""

    def __init__(self) -> None:
        self._root: _LabelNode[T] = _LabelNode()

    def add(self, pattern: str, value: T) -> None:
        node = self._root
        for label in ReverseDomainScanner(normalize_domain(pattern)):
            child = node.children.get(label)
            if child is None:
                child = _LabelNode()
                node.children[label] = child
            node = child
        node.store(value)

    def match(self, s: str) -> Tuple[Optional[T], bool]:
        node = self._root
        value, found = node.value, node.has_value
        for label in ReverseDomainScanner(normalize_domain(s)):
            child = node.children.get(label)
            if child is None:
                break
            if child.has_value:
                value, found = child.value, True
            node = child
        return value, found

    def __len__(self) -> int:
        return self._root.count()


class FullMatcher(Generic[T]):
    """Matches a domain exactly."""

    def __init__(self) -> None:
        self._domains: Dict[str, T] = {}

    def add(self, pattern: str, value: T) -> None:
        self._domains[normalize_domain(pattern)] = value

    def match(self, s: str) -> Tuple[Optional[T], bool]:
        key = normalize_domain(s)
        if key in self._domains:
            return self._domains[key], True
        return None, False

    def __len__(self) -> int:
        return len(self._domains)


class KeywordMatcher(Generic[T]):
    """Matches a domain that contains a keyword."""

    def __init__(self) -> None:
        self._keywords: Dict[str, T] = {}

    def add(self, keyword: str, value: T) -> None:
        self._keywords[normalize_domain(keyword)] = value

    def match(self, s: str) -> Tuple[Optional[T], bool]:
        s = normalize_domain(s)
        for keyword, value in self._keywords.items():
            if keyword in s:
                return value, True
        return None, False

    def __len__(self) -> int:
        return len(self._keywords)


class RegexMatcher(Generic[T]):
    """Matches domains against regular expressions.

    The expressions are applied to the lower-case, non-fqdn form of a domain.
    """

    def __init__(self) -> None:
        self._regs: Dict[str, Tuple[re.Pattern, T]] = {}

    def add(self, expr: str, value: T) -> None:
        """Add ``expr``; raise ValueError if it does not compile."""
        existing = self._regs.get(expr)
        if existing is not None:
            self._regs[expr] = (existing[0], value)
            return
        try:
            compiled = re.compile(expr)
        except re.error as exc:
            raise ValueError(f"invalid regexp {expr!r}: {exc}") from exc
        self._regs[expr] = (compiled, value)

    def match(self, s: str) -> Tuple[Optional[T], bool]:
        s = normalize_domain(s)
        for compiled, value in self._regs.values():
            if compiled.search(s):
                return value, True
        return None, False

    def __len__(self) -> int:
        return len(self._regs)


class MixMatcher(Generic[T]):
    """Combines the four matchers; patterns are typed as "type:pattern"."""

    def __init__(self) -> None:
        self._default_matcher = ""
        self._full: FullMatcher[T] = FullMatcher()
        self._domain: SubDomainMatcher[T] = SubDomainMatcher()
        self._regex: RegexMatcher[T] = RegexMatcher()
        self._keyword: KeywordMatcher[T] = KeywordMatcher()

    def set_default_matcher(self, name: str) -> None:
        """Set the matcher type used for patterns without a type prefix."""
        self._default_matcher = name

    def get_sub_matcher(self, typ: str):
        """Return the sub matcher for ``typ``, or None if the type is unknown."""
        return {
            MATCHER_FULL: self._full,
            MATCHER_DOMAIN: self._domain,
            MATCHER_REGEXP: self._regex,
            MATCHER_KEYWORD: self._keyword,
        }.get(typ)

    def add(self, s: str, value: T) -> None:
        typ, sep, pattern = s.partition(":")
        if not sep:
            typ, pattern = "", s
        if not typ:
            if not self._default_matcher:
                raise NoDefaultMatcherError()
            typ = self._default_matcher
        sub = self.get_sub_matcher(typ)
        if sub is None:
            raise ValueError(f"unsupported match type [{typ}]")
        sub.add(pattern, value)

    def match(self, s: str) -> Tuple[Optional[T], bool]:
        for matcher in (self._full, self._domain, self._regex, self._keyword):
            value, found = matcher.match(s)
            if found:
                return value, True
        return None, False

    def __len__(self) -> int:
        return len(self._full) + len(self._domain) + len(self._regex) + len(self._keyword)


def _pattern_only(s: str) -> Tuple[str, None]:
    if any(ch.isspace() for ch in s):
        raise ValueError("rule string has more than one section")
    return s, None


def load(
    matcher: WriteableMatcher[T],
    s: str,
    parse_string: Optional[ParseStringFunc] = None,
) -> None:
    """Parse ``s`` into ``(pattern, value)`` and add it to ``matcher``.

    Without ``parse_string`` the string must be a bare pattern.
    """
    parse = parse_string if parse_string is not None else _pattern_only
    pattern, value = parse(s)
    matcher.add(pattern, value)


def load_from_text(
    matcher: WriteableMatcher[T],
    text: Union[str, Iterable[str]],
    parse_string: Optional[ParseStringFunc] = None,
) -> None:
    """Load one rule per line from a string or an iterable of lines.

    '#' starts a comment; blank lines are skipped. A bad line raises
    ValueError naming its line number.
    """
    lines = text.splitlines() if isinstance(text, str) else text
    for number, line in enumerate(lines, start=1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        try:
            load(matcher, line, parse_string)
        except Exception as exc:
            raise ValueError(f"line {number}: {exc}") from exc


def new_domain_mix_matcher() -> MixMatcher[None]:
    """A MixMatcher whose default type is "domain"."""
    matcher: MixMatcher[None] = MixMatcher()
    matcher.set_default_matcher(MATCHER_DOMAIN)
    return matcher