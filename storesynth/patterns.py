# File: storesynth/patterns.py
"""
storesynth - Structural Pattern Matcher
========================================
Locates the handful of shapes the synthesizer cares about inside raw Go
source text, without building a syntax tree:

    * the entity marker comment and how often it occurs
    * the field block of the marked struct (name / type / trailing comment)
    * the ``type <entity>Methods interface { ... }`` block and its lines
    * import blocks and single-line imports (path + optional alias)
    * receiver method signatures: name, parameter text, return text
    * hand-written ``TableName()`` / ``TableAlias()`` overrides
    * the store struct and its ``name package.Type`` service fields
    * ``package.Symbol`` tokens inside a signature

Regular expressions only *locate* blocks and signature starts.  Everything
that has to be split (parameter lists, return clauses, field types) goes
through a small bracket-aware scanner, so ``map[string]int``,
``func(a, b int) error`` and grouped returns never split in the wrong
place.

Every unexpected shape raises ``StructuralParseError`` immediately.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from storesynth.errors import StructuralParseError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("storesynth.patterns")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (marker-independent)
# ---------------------------------------------------------------------------

_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_]\w*$")

_EXTRA_METHODS_BLOCK_RE: re.Pattern[str] = re.compile(
    r"^type[ \t]+([a-z]\w*)Methods[ \t]+interface[ \t]*\{[ \t]*\n(.*?)^\}",
    re.MULTILINE | re.DOTALL,
)

_STRUCT_BLOCK_RE: re.Pattern[str] = re.compile(
    r"^type[ \t]+([A-Za-z_]\w*)[ \t]+struct[ \t]*\{[ \t]*\n(.*?)^\}",
    re.MULTILINE | re.DOTALL,
)

_IMPORT_BLOCK_RE: re.Pattern[str] = re.compile(
    r"^import[ \t]*\([ \t]*\n(.*?)^\)",
    re.MULTILINE | re.DOTALL,
)
_IMPORT_SINGLE_RE: re.Pattern[str] = re.compile(
    r"^import[ \t]+(?:([A-Za-z_]\w*|\.)[ \t]+)?\"([^\"]+)\"",
    re.MULTILINE,
)
_IMPORT_STATEMENT_RE: re.Pattern[str] = re.compile(
    r"^[ \t]*(?:([A-Za-z_]\w*|\.)[ \t]+)?\"([^\"]+)\"",
    re.MULTILINE,
)

_METHOD_START_RE: re.Pattern[str] = re.compile(
    r"^func[ \t]*\([ \t]*(\w+)[ \t]+(\*?)[ \t]*(\w+)[ \t]*\)[ \t]*(\w+)[ \t]*(?=\()",
    re.MULTILINE,
)

_TABLE_NAME_RE: re.Pattern[str] = re.compile(
    r"\)[ \t]*TableName\(\)[ \t]+string[ \t]*\{\s*return[ \t]+\"([^\"]*)\""
)
_TABLE_ALIAS_RE: re.Pattern[str] = re.compile(
    r"\)[ \t]*TableAlias\(\)[ \t]+string[ \t]*\{\s*return[ \t]+\"([^\"]*)\""
)

_SERVICE_LINE_RE: re.Pattern[str] = re.compile(
    r"^[ \t]*(\w+)[ \t]+(\*?\w+\.\w+)[ \t]*(?://.*)?$",
    re.MULTILINE,
)

_QUALIFIED_TOKEN_RE: re.Pattern[str] = re.compile(r"\b([A-Za-z_]\w*)\.([A-Za-z_]\w*)")

_MAJOR_VERSION_RE: re.Pattern[str] = re.compile(r"^v\d+$")
_VERSION_SUFFIX_RE: re.Pattern[str] = re.compile(r"\.v\d+$")

_OPENERS: Dict[str, str] = {"(": ")", "[": "]", "{": "}"}
_CLOSERS: Dict[str, str] = {v: k for k, v in _OPENERS.items()}

# Go keywords that start a type made of several whitespace-separated words.
_MULTI_WORD_TYPE_RE: re.Pattern[str] = re.compile(r"^(?:<-)?(?:chan|func|struct|interface)(?!\w)")


# ---------------------------------------------------------------------------
# Match records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldLine:
    """One ``name type // comment`` line of a struct body."""

    name: str
    type: str
    comment: str = ""


@dataclass(frozen=True, slots=True)
class NameTypePair:
    """A parameter or return value; ``name`` is empty when unnamed."""

    name: str
    type: str


@dataclass(frozen=True, slots=True)
class SignatureParts:
    """A method signature split into its three textual parts."""

    name: str
    parameters_text: str
    returns_text: str


@dataclass(frozen=True, slots=True)
class MethodSignature:
    """A receiver method found in a source file."""

    receiver_name: str
    receiver_type: str
    name: str
    parameters_text: str
    returns_text: str
    text: str

    @property
    def is_public(self) -> bool:
        return self.name[:1].isupper()


@dataclass(frozen=True, slots=True)
class ImportStatement:
    """One imported path, with its alias when the import renames it."""

    path: str
    alias: str = ""

    @property
    def qualifier(self) -> str:
        """
        The identifier code uses to reach this import.

        Major-version segments are not package names: ``example.com/x/v2``
        is reached as ``x`` and ``gopkg.in/yaml.v3`` as ``yaml``.
        """
        if self.alias and self.alias not in (".", "_"):
            return self.alias
        segments: List[str] = self.path.rstrip("/").split("/")
        if len(segments) > 1 and _MAJOR_VERSION_RE.match(segments[-1]):
            segments.pop()
        return _VERSION_SUFFIX_RE.sub("", segments[-1])


@dataclass(frozen=True, slots=True)
class StructBlock:
    """A ``type Name struct { ... }`` block: its name and raw body."""

    name: str
    body: str


# ---------------------------------------------------------------------------
# Bracket-aware scanning
# ---------------------------------------------------------------------------


def _matching_close(text: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at *open_index*."""
    snippet: str = text[open_index : open_index + 60].strip()
    stack: List[str] = []
    for index in range(open_index, len(text)):
        char: str = text[index]
        if char in _OPENERS:
            stack.append(char)
        elif char in _CLOSERS:
            if not stack or stack[-1] != _CLOSERS[char]:
                raise StructuralParseError(f"Unbalanced `{char}` after `{snippet}`")
            stack.pop()
            if not stack:
                return index
    raise StructuralParseError(f"Unclosed `{text[open_index]}` in `{snippet}`")


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """
    Split *text* on *separator* only where no bracket is open.

    Items are stripped; empty items (e.g. a trailing comma) are dropped.

    Examples:
        >>> split_top_level("a map[string]int, f func(x, y int) error")
        ['a map[string]int', 'f func(x, y int) error']
    """
    items: List[str] = []
    depth: int = 0
    current: List[str] = []
    for char in text:
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
            if depth < 0:
                raise StructuralParseError(f"Unbalanced `{char}` in `{text.strip()}`")
        if char == separator and depth == 0:
            items.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    if depth != 0:
        raise StructuralParseError(f"Unbalanced brackets in `{text.strip()}`")
    items.append("".join(current).strip())
    return [item for item in items if item]


def split_tokens(text: str) -> List[str]:
    """Split on whitespace outside brackets: ``"f func(a int) error"`` → 3 tokens."""
    tokens: List[str] = []
    depth: int = 0
    current: List[str] = []
    for char in text.strip():
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
        if char.isspace() and depth == 0:
            if current:
                tokens.append("".join(current))
                current = []
            continue
        current.append(char)
    if current:
        tokens.append("".join(current))
    return tokens


def _split_name_and_type(item: str) -> Tuple[str, str]:
    """
    Split one list item into ``(name, type)``.

    One token is a bare type, two tokens are ``name type``.  Anything longer
    is only accepted when the type itself is a multi-word type such as
    ``func(a int) error`` or ``chan int``.
    """
    tokens: List[str] = split_tokens(item)
    if not tokens:
        raise StructuralParseError(f"Empty parameter or return value in `{item}`")
    if _MULTI_WORD_TYPE_RE.match(tokens[0]):
        return "", " ".join(tokens)
    if len(tokens) == 1:
        return "", tokens[0]
    if _IDENTIFIER_RE.match(tokens[0]) and (
        len(tokens) == 2 or _MULTI_WORD_TYPE_RE.match(tokens[1])
    ):
        return tokens[0], " ".join(tokens[1:])
    raise StructuralParseError(
        f"`{item.strip()}` should split into 1 or 2 parts, not {len(tokens)}"
    )


def parse_name_type_list(text: str) -> List[NameTypePair]:
    """
    Parse a Go parameter or result list (without the outer parentheses).

    Go lets consecutive names share one type (``a, b string``); names written
    without a type take the type of the next typed item.
    """
    raw: List[Tuple[str, str]] = [_split_name_and_type(item) for item in split_top_level(text)]
    if not raw:
        return []

    if not any(name for name, _ in raw):
        return [NameTypePair(name="", type=type_) for _, type_ in raw]

    pairs: List[NameTypePair] = []
    pending: List[str] = []
    for name, type_ in raw:
        if not name:
            # A bare identifier in a named list is a name waiting for a type.
            if not _IDENTIFIER_RE.match(type_):
                raise StructuralParseError(
                    f"Mixed named and unnamed entries in `({text.strip()})`"
                )
            pending.append(type_)
            continue
        for pending_name in pending:
            pairs.append(NameTypePair(name=pending_name, type=type_))
        pending = []
        pairs.append(NameTypePair(name=name, type=type_))
    if pending:
        raise StructuralParseError(f"Names without a type in `({text.strip()})`")
    return pairs


def parse_return_clause(text: str) -> List[NameTypePair]:
    """
    Parse the text after a signature's parameter list.

    ``""`` → no results, ``"error"`` → one unnamed result, ``"(a int, err
    error)"`` → a list.  A bare clause with more than one token (``"a int"``
    without parentheses) is not valid Go and is rejected.
    """
    clause: str = text.strip()
    if not clause:
        return []
    if clause.startswith("("):
        close: int = _matching_close(clause, 0)
        if clause[close + 1 :].strip():
            raise StructuralParseError(f"Trailing text after return clause `{clause}`")
        return parse_name_type_list(clause[1:close])
    name, type_ = _split_name_and_type(clause)
    if name:
        raise StructuralParseError(
            f"Return clause `{clause}` should be a single type or a parenthesized list"
        )
    return [NameTypePair(name="", type=type_)]


def split_signature(text: str) -> SignatureParts:
    """
    Split ``Name(params) returns`` into its parts.

    Examples:
        >>> split_signature("Count(filter string) (n int, err error)")
        SignatureParts(name='Count', parameters_text='filter string', returns_text='(n int, err error)')
    """
    stripped: str = text.strip()
    open_index: int = stripped.find("(")
    if open_index <= 0:
        raise StructuralParseError(f"Not a method signature: `{stripped}`")
    name: str = stripped[:open_index].strip()
    if not _IDENTIFIER_RE.match(name):
        raise StructuralParseError(f"Invalid method name `{name}` in `{stripped}`")
    close: int = _matching_close(stripped, open_index)
    return SignatureParts(
        name=name,
        parameters_text=stripped[open_index + 1 : close].strip(),
        returns_text=stripped[close + 1 :].strip(),
    )


# ---------------------------------------------------------------------------
# Marker-dependent patterns
# ---------------------------------------------------------------------------


@lru_cache(maxsize=None)
def _marker_occurrence_re(marker: str) -> re.Pattern[str]:
    # The marker must stand alone: `@synthesize-no-db-field` is not a marker.
    return re.compile(
        r"^[ \t]*//[ \t]*" + re.escape(marker) + r"(?![\w-])",
        re.MULTILINE,
    )


@lru_cache(maxsize=None)
def _marked_struct_re(marker: str) -> re.Pattern[str]:
    return re.compile(
        r"^[ \t]*//[ \t]*"
        + re.escape(marker)
        + r"[ \t]*\n(?:[ \t]*//[^\n]*\n)*"
        + r"type[ \t]+([A-Za-z_]\w*)[ \t]+struct[ \t]*\{[ \t]*\n(.*?)^\}",
        re.MULTILINE | re.DOTALL,
    )


@lru_cache(maxsize=None)
def _function_re(name: str) -> re.Pattern[str]:
    return re.compile(r"^func[ \t]+" + re.escape(name) + r"[ \t]*\(", re.MULTILINE)


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------


def count_markers(source: str, marker: str) -> int:
    """Number of stand-alone ``// <marker>`` comment lines in *source*."""
    return len(_marker_occurrence_re(marker).findall(source))


def declares_entity(source: str, marker: str) -> bool:
    """Whether *source* opts into entity extraction at all."""
    return _marker_occurrence_re(marker).search(source) is not None


# ---------------------------------------------------------------------------
# Structs & fields
# ---------------------------------------------------------------------------


def find_entity_struct(source: str, marker: str) -> StructBlock:
    """
    Return the struct directly following the marker comment.

    Raises:
        StructuralParseError: when the marker count is not exactly one, or
            no struct declaration follows the marker.
    """
    occurrences: int = count_markers(source, marker)
    if occurrences != 1:
        raise StructuralParseError(
            f"Entity files must have one and only one {marker} marking, found {occurrences}"
        )
    match: Optional[re.Match[str]] = _marked_struct_re(marker).search(source)
    if match is None:
        raise StructuralParseError(f"No struct declaration follows the {marker} marking")
    return StructBlock(name=match.group(1), body=match.group(2))


def find_field_lines(body: str) -> List[FieldLine]:
    """
    Split a struct body into fields.

    Blank lines, comment lines and embedded types are skipped.  A trailing
    comment must be separated by exactly one ``//``; more than one makes the
    split ambiguous and is rejected.
    """
    fields: List[FieldLine] = []
    for raw_line in body.splitlines():
        line: str = raw_line.strip()
        if not line or line.startswith("//"):
            continue
        parts: List[str] = line.split(None, 1)
        if len(parts) < 2 or parts[1].startswith("//"):
            logger.debug("Skipping embedded field `%s`", line)
            continue
        name, rest = parts
        if not _IDENTIFIER_RE.match(name):
            raise StructuralParseError(f"Unsupported field declaration `{line}`")

        comment: str = ""
        if "//" in rest:
            chunks: List[str] = rest.split("//")
            if len(chunks) != 2:
                raise StructuralParseError(
                    f"Found {len(chunks)} chunks in field `{name}`; "
                    "this is probably caused by multiple comment `//`"
                )
            rest, comment = chunks[0], chunks[1].strip()
        field_type: str = rest.rstrip()
        if not field_type:
            raise StructuralParseError(f"Field `{name}` has no type")
        fields.append(FieldLine(name=name, type=field_type, comment=comment))
    return fields


def find_store_struct(source: str) -> StructBlock:
    """Return the first struct declared in *source*."""
    match: Optional[re.Match[str]] = _STRUCT_BLOCK_RE.search(source)
    if match is None:
        raise StructuralParseError("Not one struct found in the store file")
    return StructBlock(name=match.group(1), body=match.group(2))


def find_service_fields(body: str) -> List[NameTypePair]:
    """``name package.Type`` fields of a struct body, in declaration order."""
    return [
        NameTypePair(name=match.group(1), type=match.group(2))
        for match in _SERVICE_LINE_RE.finditer(body)
    ]


# ---------------------------------------------------------------------------
# Extra interface methods
# ---------------------------------------------------------------------------


def find_extra_interface_block(source: str, owner: str) -> Optional[str]:
    """Body of ``type <owner>Methods interface { ... }``, if declared."""
    for match in _EXTRA_METHODS_BLOCK_RE.finditer(source):
        if match.group(1) == owner:
            return match.group(2)
    return None


def find_interface_method_lines(block: str) -> List[SignatureParts]:
    """Method lines of an interface body; embedded interfaces are skipped."""
    methods: List[SignatureParts] = []
    for raw_line in block.splitlines():
        line: str = raw_line.split("//", 1)[0].strip()
        if not line:
            continue
        if "(" not in line:
            logger.debug("Skipping embedded interface `%s`", line)
            continue
        methods.append(split_signature(line))
    return methods


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def find_imports(source: str) -> List[ImportStatement]:
    """Every import of *source*: grouped blocks and single-line imports."""
    statements: List[ImportStatement] = []
    for block in _IMPORT_BLOCK_RE.finditer(source):
        for match in _IMPORT_STATEMENT_RE.finditer(block.group(1)):
            statements.append(ImportStatement(path=match.group(2), alias=match.group(1) or ""))
    for match in _IMPORT_SINGLE_RE.finditer(source):
        statements.append(ImportStatement(path=match.group(2), alias=match.group(1) or ""))
    return statements


def find_qualified_tokens(text: str) -> List[str]:
    """Package qualifiers of ``package.Symbol`` tokens, first-seen order."""
    qualifiers: List[str] = []
    for match in _QUALIFIED_TOKEN_RE.finditer(text):
        if match.group(1) not in qualifiers:
            qualifiers.append(match.group(1))
    return qualifiers


# ---------------------------------------------------------------------------
# Methods & functions
# ---------------------------------------------------------------------------


def find_methods(source: str) -> List[MethodSignature]:
    """
    Every receiver method declared in *source*, public or not.

    The signature runs from the method name to the ``{`` opening its body;
    parameters are delimited by bracket matching, so multi-line parameter
    lists and function-typed parameters are handled.
    """
    methods: List[MethodSignature] = []
    for match in _METHOD_START_RE.finditer(source):
        open_index: int = match.end()
        close: int = _matching_close(source, open_index)
        body_start: int = _find_body_start(source, close + 1)
        returns_text: str = source[close + 1 : body_start].strip()
        methods.append(
            MethodSignature(
                receiver_name=match.group(1),
                receiver_type=match.group(3),
                name=match.group(4),
                parameters_text=" ".join(source[open_index + 1 : close].split()),
                returns_text=" ".join(returns_text.split()),
                text=source[match.start() : body_start].strip(),
            )
        )
    return methods


def _find_body_start(source: str, index: int) -> int:
    """Index of the ``{`` that opens a function body, skipping bracketed types."""
    position: int = index
    while position < len(source):
        char: str = source[position]
        if char == "{":
            # `interface{}` / `struct{}` in a result type open and close inline.
            if source[index:position].rstrip().endswith(("interface", "struct")):
                position = _matching_close(source, position) + 1
                continue
            return position
        if char in "([":
            position = _matching_close(source, position) + 1
            continue
        position += 1
    raise StructuralParseError(f"Method body not found after `{source[index:index + 40].strip()}`")


def has_function(source: str, name: str) -> bool:
    """Whether a plain (receiver-less) function *name* is declared."""
    return _function_re(name).search(source) is not None


# ---------------------------------------------------------------------------
# Table overrides
# ---------------------------------------------------------------------------


def find_table_name_override(source: str) -> Optional[str]:
    match: Optional[re.Match[str]] = _TABLE_NAME_RE.search(source)
    return match.group(1) if match else None


def find_table_alias_override(source: str) -> Optional[str]:
    match: Optional[re.Match[str]] = _TABLE_ALIAS_RE.search(source)
    return match.group(1) if match else None


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldLine",
    "NameTypePair",
    "SignatureParts",
    "MethodSignature",
    "ImportStatement",
    "StructBlock",
    "split_top_level",
    "split_tokens",
    "parse_name_type_list",
    "parse_return_clause",
    "split_signature",
    "count_markers",
    "declares_entity",
    "find_entity_struct",
    "find_field_lines",
    "find_store_struct",
    "find_service_fields",
    "find_extra_interface_block",
    "find_interface_method_lines",
    "find_imports",
    "find_qualified_tokens",
    "find_methods",
    "has_function",
    "find_table_name_override",
    "find_table_alias_override",
]

logger.debug("storesynth.patterns loaded: %d public symbols.", len(__all__))
