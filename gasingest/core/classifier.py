"""Script ID extraction and library/web app classification for README text.

Extraction runs an ordered list of ScriptIdPattern entries. Patterns are tried
in priority order and the first match that survives the pattern's exclusion
set wins, regardless of where it occurs in the text. A label-prefixed ID near
the end of a README beats a bare token near the top.
"""

import re
from dataclasses import dataclass, field
from enum import Enum


class ScriptType(str, Enum):
    """Classification of a script ID."""
    LIBRARY = "library"
    WEB_APP = "web_app"


# Deployment IDs of published web apps start with this prefix
WEB_APP_ID_PREFIX = "AKfy"

_ID = r"[A-Za-z0-9_-]"


# --- Exclusion shapes -----------------------------------------------------

COMMIT_HASH_URL = re.compile(
    r"https?://[^\s)\]>\"']*/commits?/[0-9a-fA-F]{7,40}(?![0-9a-fA-F])"
)

UUID = re.compile(
    r"(?<![0-9a-fA-F])[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-"
    r"[0-9a-fA-F]{4}-[0-9a-fA-F]{12}(?![0-9a-fA-F])"
)

IMAGE_URL = re.compile(
    r"https?://[^\s)\]>\"']+?\.(?:png|jpe?g|gif|svg|webp|bmp|ico)(?![A-Za-z0-9])",
    re.IGNORECASE,
)

MARKDOWN_IMAGE = re.compile(r"!\[[^\]\n]*\]\([^)\s]+\)")

# "email_id": "1a2b..." style values under keys that are not script IDs
NON_SCRIPT_JSON_VALUE = re.compile(
    r"[\"'](?!(?:script|library|project)[_-]?(?:id|key)[\"'])[A-Za-z_][\w-]*[\"']"
    r"\s*:\s*[\"'][^\"'\n]*[\"']",
    re.IGNORECASE,
)

# Lowercase hex digests (hashes, tokens) never look like script IDs
HEX_DIGEST = re.compile(r"(?<![A-Za-z0-9_-])[0-9a-f]{25,}(?![A-Za-z0-9_-])")

URL_EXCLUSIONS: tuple[re.Pattern, ...] = (COMMIT_HASH_URL, UUID, IMAGE_URL, MARKDOWN_IMAGE)
LABEL_EXCLUSIONS: tuple[re.Pattern, ...] = URL_EXCLUSIONS + (HEX_DIGEST,)
DEFAULT_EXCLUSIONS: tuple[re.Pattern, ...] = LABEL_EXCLUSIONS + (NON_SCRIPT_JSON_VALUE,)


@dataclass(frozen=True)
class ScriptIdPattern:
    """A named extraction regex paired with the shapes it must not match inside."""

    name: str
    regex: re.Pattern
    exclusions: tuple[re.Pattern, ...] = field(default=DEFAULT_EXCLUSIONS)

    def candidates(self, text: str):
        """Yield (candidate, span) pairs in text order."""
        group = 1 if self.regex.groups else 0
        for match in self.regex.finditer(text):
            candidate = match.group(group)
            if candidate:
                yield candidate, match.span(group)


DEFAULT_SCRIPT_ID_PATTERNS: tuple[ScriptIdPattern, ...] = (
    # Script ID: ..., Library ID is **`...`**, スクリプトID：...
    ScriptIdPattern(
        "label",
        re.compile(
            r"(?:スクリプト\s*ID|ライブラリ\s*ID|script\s*id|library\s*id|gas\s*id)"
            r"(?![A-Za-z])[\"']?\s*(?:is\s*)?[:：=]?\s*[*_`'\"]*\s*"
            rf"({_ID}{{20,70}})(?!{_ID})",
            re.IGNORECASE,
        ),
        LABEL_EXCLUSIONS,
    ),
    # "1abc..." quoted string literal
    ScriptIdPattern(
        "quoted",
        re.compile(rf"[\"'`](1{_ID}{{24,69}})[\"'`]"),
    ),
    # project key phrase followed by a fenced block holding only the ID
    ScriptIdPattern(
        "project_key_block",
        re.compile(
            r"(?:project\s*key|プロジェクト\s*キー|ライブラリ\s*キー)[^\n`]*\s*"
            rf"```[A-Za-z]*[ \t]*\n\s*({_ID}{{20,70}})\s*\n\s*```",
            re.IGNORECASE,
        ),
    ),
    ScriptIdPattern(
        "edit_url",
        re.compile(
            rf"https?://script\.google\.com/(?:macros/)?d/({_ID}{{20,}})(?:/edit)?",
            re.IGNORECASE,
        ),
        URL_EXCLUSIONS,
    ),
    ScriptIdPattern(
        "project_url",
        re.compile(
            rf"https?://script\.google\.com/(?:u/\d+/)?home/projects/({_ID}{{20,}})",
            re.IGNORECASE,
        ),
        URL_EXCLUSIONS,
    ),
    ScriptIdPattern(
        "exec_url",
        re.compile(
            rf"https?://script\.google\.com/(?:a/)?macros/(?:[^/\s]+/)?s/({_ID}{{20,}})/(?:exec|dev)",
            re.IGNORECASE,
        ),
        URL_EXCLUSIONS,
    ),
    # Bare token: lowest precision, highest recall
    ScriptIdPattern(
        "bare",
        re.compile(rf"(?<!{_ID})(1{_ID}{{24,69}})(?!{_ID})"),
    ),
)


WEB_APP_URL_PATTERN = re.compile(
    rf"https://script\.google\.com/(?:a/)?macros/(?:[^/\s]+/)?s/({_ID}+)/exec"
)

_GS_FILE = r"[A-Za-z0-9_][\w-]*(?:/[\w-]+)*\.gs"

# Companion .gs source files named in the prose of a README
DEFAULT_WEB_APP_PATTERNS: tuple[re.Pattern, ...] = (
    # - main.gs, 1. `utils.gs`, ├── Code.gs
    re.compile(
        rf"^[ \t]*(?:[-*+][ \t]+|\d+\.[ \t]+|[│├└─| \t]+)`?({_GS_FILE})`?(?![\w/.-])",
        re.MULTILINE,
    ),
    # `Code.gs` as inline code
    re.compile(rf"`({_GS_FILE})`"),
    # ... copy main.gs into ...
    re.compile(rf"(?<![\w./@-])({_GS_FILE})(?![\w/-]|\.\w)"),
)

_FENCED_BLOCK = re.compile(r"(```|~~~).*?(?:\1|\Z)", re.DOTALL)
_INLINE_CODE = re.compile(r"`([^`\n]*)`")
_SHELL_PROMPT = re.compile(r"^[ \t>]*\$ .*$", re.MULTILINE)
_URL = re.compile(r"https?://\S+")
_LINK_TARGET = re.compile(r"\]\([^)]*\)")
_DOC_LINK_TEXT = re.compile(
    r"\[(?:license|licence|readme|changelog|contributing|code[ _-]of[ _-]conduct)[^\]]*\]",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Classification:
    """Result of classifying README text."""

    script_id: str
    script_type: ScriptType


class _ExclusionIndex:
    """Memoized exclusion spans for one text."""

    def __init__(self, text: str):
        self._text = text
        self._spans: dict[re.Pattern, list[tuple[int, int]]] = {}

    def _spans_for(self, pattern: re.Pattern) -> list[tuple[int, int]]:
        if pattern not in self._spans:
            self._spans[pattern] = [m.span() for m in pattern.finditer(self._text)]
        return self._spans[pattern]

    def excludes(self, span: tuple[int, int], exclusions: tuple[re.Pattern, ...]) -> bool:
        start, end = span
        for pattern in exclusions:
            for ex_start, ex_end in self._spans_for(pattern):
                if ex_start <= start and end <= ex_end:
                    return True
        return False


def extract_script_id(
    text: str,
    patterns: tuple[ScriptIdPattern, ...] | list[ScriptIdPattern] | None = None,
) -> str | None:
    """
    Extract a script ID from README-like text.

    Args:
        text: README content
        patterns: Ordered extraction patterns, defaults to DEFAULT_SCRIPT_ID_PATTERNS

    Returns:
        First non-excluded match in pattern priority order, or None
    """
    if not text:
        return None

    index = _ExclusionIndex(text)
    for pattern in patterns if patterns is not None else DEFAULT_SCRIPT_ID_PATTERNS:
        for candidate, span in pattern.candidates(text):
            if not index.excludes(span, pattern.exclusions):
                return candidate
    return None


def find_web_app_id(text: str) -> str | None:
    """Return the script ID of the first web app execution URL in text."""
    for match in WEB_APP_URL_PATTERN.finditer(text or ""):
        script_id = match.group(1)
        if len(script_id) > 10:
            return script_id
    return None


def _prose_only(text: str) -> str:
    """Strip code examples, shell commands, URLs and doc links from markdown."""
    text = _FENCED_BLOCK.sub(" ", text)
    # Inline code with whitespace is a command, a lone file name is kept
    text = _INLINE_CODE.sub(lambda m: " " if re.search(r"\s", m.group(1)) else m.group(0), text)
    text = _SHELL_PROMPT.sub(" ", text)
    text = _LINK_TARGET.sub("]", text)
    text = _URL.sub(" ", text)
    return _DOC_LINK_TEXT.sub(" ", text)


def has_source_file_evidence(
    text: str,
    patterns: tuple[re.Pattern, ...] | list[re.Pattern] | None = None,
) -> bool:
    """
    Check whether README prose names companion .gs source files.

    Matches inside fenced code, inline shell commands and link targets do not
    count.
    """
    if not text:
        return False
    prose = _prose_only(text)
    return any(
        pattern.search(prose)
        for pattern in (patterns if patterns is not None else DEFAULT_WEB_APP_PATTERNS)
    )


def classify(
    text: str,
    script_id: str | None = None,
    fallback_id: str | None = None,
    patterns: tuple[ScriptIdPattern, ...] | None = None,
    web_app_patterns: tuple[re.Pattern, ...] | None = None,
) -> Classification | None:
    """
    Classify README text as a library or a web app.

    Args:
        text: README content
        script_id: Previously extracted ID, extracted from text if None
        fallback_id: ID to use when only source file evidence exists,
            usually "{owner}/{repo}"
        patterns: Script ID patterns for extraction
        web_app_patterns: Source file patterns for web app evidence

    Returns:
        Classification, or None when the text is not ingestible
    """
    text = text or ""
    if script_id is None:
        script_id = extract_script_id(text, patterns)
    web_app_id = find_web_app_id(text)
    has_files = has_source_file_evidence(text, web_app_patterns)
    library_id = script_id if script_id and script_id.startswith("1") else None

    if web_app_id:
        if library_id:
            return Classification(library_id, ScriptType.LIBRARY)
        if web_app_id.startswith("1"):
            return Classification(web_app_id, ScriptType.LIBRARY)
        if web_app_id.startswith(WEB_APP_ID_PREFIX) and has_files:
            return Classification(web_app_id, ScriptType.WEB_APP)
        return Classification(script_id or web_app_id, ScriptType.LIBRARY)

    if script_id:
        if library_id or not has_files:
            return Classification(script_id, ScriptType.LIBRARY)
        return Classification(script_id, ScriptType.WEB_APP)

    if has_files and fallback_id:
        return Classification(fallback_id, ScriptType.WEB_APP)
    return None


def script_id_from_url(url: str) -> str | None:
    """Extract the script ID from a single script.google.com URL."""
    for pattern in DEFAULT_SCRIPT_ID_PATTERNS:
        if pattern.name.endswith("_url"):
            match = pattern.regex.search(url or "")
            if match:
                return match.group(1)
    return None


def is_web_app_url(url: str) -> bool:
    """Check whether url is a web app execution URL."""
    return bool(WEB_APP_URL_PATTERN.fullmatch((url or "").strip()))
