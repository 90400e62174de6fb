"""
Best-effort repair of malformed JSON returned by LLM providers.

Repair steps run in order and stop as soon as the text decodes:
1. strip an enclosing markdown code fence
2. escape raw newlines/tabs inside string literals
3. drop stray control characters
4. close a truncated document (open string, then brackets/braces)

Text that already decodes is returned untouched, and text that cannot be
repaired is returned as it came in.
"""

import json
import logging
import re

logger = logging.getLogger(__name__)

OUTSIDE_STRING = "outside_string"
INSIDE_STRING = "inside_string"
ESCAPE_PENDING = "escape_pending"

FENCE_OPEN_RE = re.compile(r'^\s*```[\w-]*[^\S\n]*\n?')
CONTROL_CHARS_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')
STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
CLOSERS = {"{": "}", "[": "]"}


def decodes(text: str) -> bool:
    try:
        json.loads(text)
    except (ValueError, RecursionError):
        return False
    return True


def strip_code_fence(text: str) -> str:
    """Remove a single enclosing ```/```json fence. A missing closing fence is tolerated."""
    match = FENCE_OPEN_RE.match(text)
    if not match:
        return text
    body = text[match.end():]
    close = body.rfind("```")
    if close != -1 and not body[close + 3:].strip():
        body = body[:close]
    return body.strip()


def escape_control_chars_in_strings(text: str) -> str:
    """Rewrite raw newline, carriage return and tab characters inside string literals."""
    out = []
    state = OUTSIDE_STRING
    for ch in text:
        if state == OUTSIDE_STRING:
            if ch == '"':
                state = INSIDE_STRING
            out.append(ch)
        elif state == ESCAPE_PENDING:
            out.append(ch)
            state = INSIDE_STRING
        else:
            if ch == "\\":
                state = ESCAPE_PENDING
                out.append(ch)
            elif ch == '"':
                state = OUTSIDE_STRING
                out.append(ch)
            else:
                out.append(STRING_ESCAPES.get(ch, ch))
    return "".join(out)


def strip_control_chars(text: str) -> str:
    return CONTROL_CHARS_RE.sub("", text)


def close_truncated_json(text: str) -> str:
    """Close an unterminated string and any unmatched brackets/braces.

    A key left without a value gets ``null`` and a dangling comma is dropped,
    so ``{"a": 1, "b`` becomes ``{"a": 1, "b":null}``.
    """
    stack = []
    state = OUTSIDE_STRING
    expect_key = False
    string_is_key = False
    key_without_value = False

    for ch in text:
        if state == OUTSIDE_STRING:
            if ch == '"':
                state = INSIDE_STRING
                string_is_key = expect_key and bool(stack) and stack[-1] == "{"
                key_without_value = False
            elif ch in CLOSERS:
                stack.append(ch)
                expect_key = ch == "{"
            elif ch in "}]":
                if stack:
                    stack.pop()
                expect_key = False
            elif ch == ":":
                expect_key = False
                key_without_value = False
            elif ch == ",":
                expect_key = bool(stack) and stack[-1] == "{"
        elif state == ESCAPE_PENDING:
            state = INSIDE_STRING
        else:
            if ch == "\\":
                state = ESCAPE_PENDING
            elif ch == '"':
                state = OUTSIDE_STRING
                if string_is_key:
                    expect_key = False
                    key_without_value = True

    repaired = text
    if state == ESCAPE_PENDING:
        repaired = repaired[:-1]
        state = INSIDE_STRING
    if state == INSIDE_STRING:
        repaired += '"'
        key_without_value = string_is_key

    repaired = repaired.rstrip()
    if repaired.endswith(","):
        repaired = repaired[:-1].rstrip()
    if key_without_value:
        repaired += ":null"
    elif repaired.endswith(":"):
        repaired += "null"

    repaired += "".join(CLOSERS[opener] for opener in reversed(stack))
    return repaired


def repair_json_text(raw: str) -> str:
    """Repair common LLM JSON defects. Never raises."""
    if not isinstance(raw, str) or not raw.strip():
        return raw
    if decodes(raw):
        return raw

    text = strip_code_fence(raw)
    if decodes(text):
        logger.debug("JSON repaired by stripping code fence")
        return text

    text = escape_control_chars_in_strings(text)
    if decodes(text):
        logger.debug("JSON repaired by escaping control characters inside strings")
        return text

    text = strip_control_chars(text)
    if decodes(text):
        logger.debug("JSON repaired by stripping control characters")
        return text

    closed = close_truncated_json(text)
    if decodes(closed):
        logger.info("Repaired truncated JSON response")
        return closed

    return raw
