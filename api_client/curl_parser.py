"""
Curl Command Parser

Turns a curl invocation into a RequestDescriptor.

The command is normalized, split into shell tokens, and then each piece
(url, method, headers, body, user agent, basic auth) is pulled out by its
own extraction function. Extraction is order-insensitive and every piece
except the url degrades to a default when absent or malformed.
"""

import base64
import json
import re
import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, unquote, urlsplit

from models.requests import BodyType, HttpMethod, RequestDescriptor
from observability.logging_config import get_logger
from observability.metrics import metrics

logger = get_logger(__name__)

LINE_CONTINUATION = re.compile(r"\\\s*\n")
WHITESPACE = re.compile(r"\s+")
URL_SCHEME = re.compile(r"^https?://", re.IGNORECASE)

METHOD_FLAGS = ("-X", "--request")
HEADER_FLAGS = ("-H", "--header")
DATA_FLAGS = ("-d", "--data", "--data-raw", "--data-binary")
FORM_FLAGS = ("-F", "--form")
USER_AGENT_FLAGS = ("-A", "--user-agent")
USER_FLAGS = ("-u", "--user")
URL_FLAGS = ("--url",)

# Flags that consume the following token, so it is never mistaken for the url.
VALUE_FLAGS = frozenset(
    METHOD_FLAGS
    + HEADER_FLAGS
    + DATA_FLAGS
    + FORM_FLAGS
    + USER_AGENT_FLAGS
    + USER_FLAGS
    + URL_FLAGS
    + (
        "--data-urlencode",
        "-b",
        "--cookie",
        "-e",
        "--referer",
        "-o",
        "--output",
        "-x",
        "--proxy",
        "-m",
        "--max-time",
        "--connect-timeout",
        "-w",
        "--write-out",
    )
)

CONTENT_TYPES = {
    BodyType.JSON: "application/json",
    BodyType.URLENCODED: "application/x-www-form-urlencoded",
}

EXAMPLES = [
    {
        "name": "Simple GET request",
        "curl": 'curl -X GET "https://api.example.com/users" -H "Accept: application/json"',
    },
    {
        "name": "POST with JSON data",
        "curl": (
            'curl -X POST "https://api.example.com/users" \\\n'
            '  -H "Content-Type: application/json" \\\n'
            '  -H "Authorization: Bearer token123" \\\n'
            """  -d '{"name": "John Doe", "email": "john@example.com"}'"""
        ),
    },
    {
        "name": "PUT with form data",
        "curl": (
            'curl -X PUT "https://api.example.com/users/1" \\\n'
            '  -H "Content-Type: application/x-www-form-urlencoded" \\\n'
            '  -d "name=Jane Doe&email=jane@example.com"'
        ),
    },
    {
        "name": "GET with query parameters",
        "curl": (
            'curl "https://api.example.com/search?q=javascript&limit=10&offset=0" \\\n'
            '  -H "User-Agent: MyApp/1.0"'
        ),
    },
    {
        "name": "DELETE with authentication",
        "curl": (
            'curl -X DELETE "https://api.example.com/users/1" \\\n'
            '  -u "username:password" \\\n'
            '  -H "Accept: application/json"'
        ),
    },
]


class CurlParseError(ValueError):
    """Raised when a command cannot be turned into a request."""


@dataclass
class CommandTokens:
    """A tokenized curl command split into flag values and positionals."""

    tokens: List[str]
    options: List[Tuple[str, str]] = field(default_factory=list)
    positionals: List[str] = field(default_factory=list)

    @classmethod
    def from_text(cls, command: str) -> "CommandTokens":
        tokens = tokenize(command)
        options, positionals = scan_tokens(tokens)
        return cls(tokens=tokens, options=options, positionals=positionals)

    def values(self, *flags: str) -> List[str]:
        """Values given to any of ``flags``, in command order."""
        return [value for flag, value in self.options if flag in flags]

    def first(self, *flags: str) -> Optional[str]:
        found = self.values(*flags)
        return found[0] if found else None


def normalize_command(command: str) -> str:
    """Collapse line continuations and whitespace runs into single spaces."""
    command = LINE_CONTINUATION.sub(" ", command)
    return WHITESPACE.sub(" ", command).strip()


def tokenize(command: str) -> List[str]:
    """Split a command into shell words, tolerating unbalanced quotes."""
    try:
        return shlex.split(command)
    except ValueError as e:
        logger.warning("curl_tokenize_fallback", error=str(e))
        return [token.strip("'\"") for token in command.split(" ") if token]


def scan_tokens(tokens: List[str]) -> Tuple[List[Tuple[str, str]], List[str]]:
    """Pair value-taking flags with their values; collect everything else."""
    options: List[Tuple[str, str]] = []
    positionals: List[str] = []

    index = 1 if tokens and tokens[0].lower() == "curl" else 0
    while index < len(tokens):
        token = tokens[index]

        if token.startswith("--") and "=" in token:
            name, _, value = token.partition("=")
            if name in VALUE_FLAGS:
                options.append((name, value))
                index += 1
                continue

        if token in VALUE_FLAGS:
            if index + 1 < len(tokens):
                options.append((token, tokens[index + 1]))
            index += 2
            continue

        if token.startswith("-") and len(token) > 1:
            # -XPOST style: short flag with the value attached
            if not token.startswith("--") and token[:2] in VALUE_FLAGS:
                options.append((token[:2], token[2:]))
            index += 1
            continue

        positionals.append(token)
        index += 1

    return options, positionals


def extract_url(command: CommandTokens) -> Optional[str]:
    """Locate the request url; None when the command has none."""
    explicit = command.first(*URL_FLAGS)
    if explicit:
        return explicit

    for token in command.positionals:
        if URL_SCHEME.match(token):
            return token

    tokens = command.tokens
    if len(tokens) > 1 and tokens[0].lower() == "curl" and not tokens[1].startswith("-"):
        return tokens[1]

    return None


def split_url_params(raw_url: str) -> Tuple[str, Dict[str, str]]:
    """Split a url into scheme+host+path and decoded query parameters."""
    try:
        parts = urlsplit(raw_url)
    except ValueError:
        parts = None

    if parts is not None and parts.scheme and parts.netloc:
        host = parts.netloc.rpartition("@")[2]
        params = dict(parse_qsl(parts.query, keep_blank_values=True))
        return f"{parts.scheme}://{host}{parts.path or '/'}", params

    # Relative path: decode the query by hand
    path, _, query = raw_url.partition("?")
    params: Dict[str, str] = {}
    for pair in query.split("&"):
        if "=" not in pair:
            continue
        key, _, value = pair.partition("=")
        if key:
            params[unquote(key)] = unquote(value)
    return path, params


def extract_method(command: CommandTokens) -> HttpMethod:
    value = command.first(*METHOD_FLAGS)
    if not value:
        return HttpMethod.GET
    try:
        return HttpMethod(value.upper())
    except ValueError:
        logger.warning("curl_unknown_method", method=value)
        return HttpMethod.GET


def extract_headers(command: CommandTokens) -> Dict[str, str]:
    """Collect -H headers; a later header replaces an earlier one of the same name."""
    headers: Dict[str, str] = {}
    for raw in command.values(*HEADER_FLAGS):
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            continue
        set_header(headers, name.strip(), value.strip())
    return headers


def classify_body(content: str) -> Tuple[str, BodyType]:
    """Detect the body type; JSON bodies come back pretty-printed."""
    try:
        parsed = json.loads(content, parse_constant=_reject_constant)
    except ValueError:
        pass
    else:
        return json.dumps(parsed, indent=2, ensure_ascii=False), BodyType.JSON

    if "=" in content and "{" not in content:
        return content, BodyType.URLENCODED

    return content, BodyType.TEXT


def extract_body(command: CommandTokens) -> Optional[Tuple[str, BodyType]]:
    data = command.first(*DATA_FLAGS)
    if data is not None:
        return classify_body(data)

    fields = command.values(*FORM_FLAGS)
    if fields:
        return "\n".join(fields), BodyType.FORM_DATA

    return None


def extract_user_agent(command: CommandTokens) -> Optional[str]:
    return command.first(*USER_AGENT_FLAGS) or None


def extract_basic_auth(command: CommandTokens) -> Optional[str]:
    """
    Authorization header value for -u user:pass.

    Without a colon curl would prompt for the password, so no header is
    produced. An empty password (``user:``) is kept.
    """
    credentials = command.first(*USER_FLAGS)
    if not credentials:
        return None
    if ":" not in credentials:
        logger.warning("curl_basic_auth_without_password")
        return None
    encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


def set_header(headers: Dict[str, str], name: str, value: str) -> None:
    """Set a header, dropping any existing header that differs only in case."""
    for existing in [key for key in headers if key.lower() == name.lower()]:
        del headers[existing]
    headers[name] = value


def has_header(headers: Dict[str, str], name: str) -> bool:
    return any(key.lower() == name.lower() for key in headers)


def parse_curl(command: Any) -> RequestDescriptor:
    """
    Parse a curl command into a RequestDescriptor.

    Args:
        command: curl command text

    Returns:
        RequestDescriptor for the command

    Raises:
        CurlParseError: if the input is empty or no url can be found
    """
    if not isinstance(command, str) or not command.strip():
        metrics.record_curl_parse(success=False)
        raise CurlParseError("Invalid curl command")

    tokens = CommandTokens.from_text(normalize_command(command))

    raw_url = extract_url(tokens)
    if not raw_url:
        metrics.record_curl_parse(success=False)
        logger.warning("curl_url_missing")
        raise CurlParseError("Failed to parse curl command: no URL found")

    url, params = split_url_params(raw_url)
    headers = extract_headers(tokens)

    body = ""
    body_type = BodyType.JSON
    extracted = extract_body(tokens)
    if extracted is not None:
        body, body_type = extracted
        content_type = CONTENT_TYPES.get(body_type)
        if content_type and not has_header(headers, "Content-Type"):
            headers["Content-Type"] = content_type

    user_agent = extract_user_agent(tokens)
    if user_agent:
        set_header(headers, "User-Agent", user_agent)

    authorization = extract_basic_auth(tokens)
    if authorization:
        set_header(headers, "Authorization", authorization)

    descriptor = RequestDescriptor(
        method=extract_method(tokens),
        url=url,
        params=params,
        headers=headers,
        body=body,
        body_type=body_type,
    )

    metrics.record_curl_parse(success=True, body_type=body_type.value)
    logger.debug(
        "curl_parsed",
        method=descriptor.method.value,
        url=descriptor.url,
        params=len(params),
        headers=len(headers),
        body_type=body_type.value,
    )
    return descriptor


def _reject_constant(name: str):
    raise ValueError(f"Invalid JSON constant: {name}")


class CurlParser:
    """Entry point grouping the parser and its sample commands."""

    @staticmethod
    def parse(command: str) -> RequestDescriptor:
        return parse_curl(command)

    @staticmethod
    def get_examples() -> List[Dict[str, str]]:
        """Sample commands covering the supported flags."""
        return [dict(example) for example in EXAMPLES]
