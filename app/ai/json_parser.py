"""Lenient JSON parsing helpers for LLM outputs."""

from __future__ import annotations

import json
import re
from typing import Any

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_FENCE_OPEN_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})


def strip_json_fences(raw: str) -> str:
  """Remove a BOM and markdown code fences wrapped around a JSON payload."""
  text = raw.lstrip("\ufeff").strip()
  text = _FENCE_OPEN_RE.sub("", text, count=1)
  text = _FENCE_CLOSE_RE.sub("", text, count=1)
  return text.strip()


def trim_to_json(raw: str) -> str:
  """Drop prose before the first opening bracket and after the last closing one."""
  starts = [index for index in (raw.find("{"), raw.find("[")) if index != -1]
  if not starts:
    return raw
  start = min(starts)
  end = max(raw.rfind("}"), raw.rfind("]"))
  if end < start:
    return raw[start:]
  return raw[start : end + 1]


def parse_json_with_fallback(raw: str) -> Any:
  """Parse JSON with progressively more aggressive recovery passes.

  Valid JSON, optionally fenced or surrounded by prose, parses to the same
  value as the bare payload. Raises ``json.JSONDecodeError`` when every pass
  fails.
  """
  last_error: json.JSONDecodeError | None = None

  # Prefer strict parsing so valid JSON is preserved without mutation.
  try:
    return json.loads(raw)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Drop fences and surrounding prose, then accept raw control characters inside strings.
  trimmed = trim_to_json(strip_json_fences(raw))
  try:
    return json.loads(trimmed, strict=False)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Strip trailing commas that commonly appear in LLM output.
  cleaned = _strip_trailing_commas(trimmed)
  try:
    return json.loads(cleaned, strict=False)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Extract the first balanced JSON object/array to ignore concatenated payloads.
  candidate = _extract_json_block(cleaned)

  # Fail fast when no JSON-shaped payload is present in the response.
  if candidate is None:
    raise last_error

  try:
    return json.loads(candidate, strict=False)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Remove JS-style comments and typographic quotes left by chatty models.
  normalized = _strip_trailing_commas(_strip_comments(candidate).translate(_SMART_QUOTES))
  try:
    return json.loads(normalized, strict=False)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Quote unquoted object keys to recover from JS-style output.
  quoted = _quote_unquoted_keys(normalized)
  try:
    return json.loads(quoted, strict=False)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Insert missing commas between values inside arrays/objects.
  repaired = _insert_missing_commas(quoted)
  try:
    return json.loads(repaired, strict=False)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Raise the last error when none of the recovery passes succeed.
  raise last_error


def _extract_json_block(raw: str) -> str | None:
  """Locate the first balanced JSON object/array for recovery parsing."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  # Scan the text for a balanced JSON payload while honoring string escapes.
  for index, char in enumerate(raw):
    if start_index is None:
      if char in "{[":
        start_index = index
        depth = 1

      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False

      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None


def _strip_trailing_commas(raw: str) -> str:
  """Remove trailing commas before closing brackets for lenient parsing."""
  # Keep the transform narrow so only obvious comma violations are altered.
  return _TRAILING_COMMA_RE.sub(r"\1", raw)


def _strip_comments(raw: str) -> str:
  """Remove // and /* */ comments that sit outside string literals."""
  output: list[str] = []
  in_string = False
  escape = False
  index = 0

  while index < len(raw):
    char = raw[index]

    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      index += 1
      continue

    if char == '"':
      in_string = True
      output.append(char)
      index += 1
      continue

    # Line comments run to the end of the line; URLs inside strings are untouched.
    if raw.startswith("//", index):
      newline = raw.find("\n", index)
      index = len(raw) if newline == -1 else newline
      continue

    if raw.startswith("/*", index):
      close = raw.find("*/", index + 2)
      index = len(raw) if close == -1 else close + 2
      continue

    output.append(char)
    index += 1

  return "".join(output)


def _quote_unquoted_keys(raw: str) -> str:
  """Wrap bare object keys in quotes to handle JS-style output."""
  output: list[str] = []
  in_string = False
  escape = False
  expecting_key = False
  index = 0

  # Walk the payload and only transform keys outside of strings.
  while index < len(raw):
    char = raw[index]

    if in_string:
      # Preserve escaped characters while inside string literals.
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      index += 1
      continue

    if char == '"':
      output.append(char)
      in_string = True
      index += 1
      continue

    if char in "{,":
      output.append(char)
      expecting_key = True
      index += 1
      continue

    if char in "}:":
      output.append(char)
      expecting_key = False
      index += 1
      continue

    if not expecting_key or char.isspace():
      output.append(char)
      index += 1
      continue

    # Single-quoted keys become double-quoted keys.
    if char == "'":
      close = raw.find("'", index + 1)
      if close != -1:
        output.append('"' + raw[index + 1 : close].replace('"', '\\"') + '"')
        index = close + 1
        continue

    # Quote bare keys that look like identifiers and precede a colon.
    if char.isalpha() or char == "_":
      start = index
      index += 1

      # Consume identifier characters in the key.
      while index < len(raw) and (raw[index].isalnum() or raw[index] in "_-"):
        index += 1

      key = raw[start:index]
      lookahead = index

      # Capture whitespace between key and colon.
      while lookahead < len(raw) and raw[lookahead].isspace():
        lookahead += 1

      if lookahead < len(raw) and raw[lookahead] == ":":
        output.append(f'"{key}"')
        output.append(raw[index:lookahead])
        output.append(":")
        expecting_key = False
        index = lookahead + 1
        continue

      output.append(key)
      continue

    output.append(char)
    index += 1

  return "".join(output)


def _insert_missing_commas(raw: str) -> str:
  """Insert commas when values run together to salvage near-JSON outputs."""
  output: list[str] = []
  in_string = False
  escape = False
  last_value_end = False
  stack: list[str] = []
  index = 0

  # Walk characters while tracking structural context and string boundaries.
  while index < len(raw):
    char = raw[index]

    # Preserve characters inside strings verbatim while tracking escapes.
    if in_string:
      output.append(char)
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
        last_value_end = True
      index += 1
      continue

    if char.isspace():
      output.append(char)
      index += 1
      continue

    # A new value or key directly after a finished value needs a separator.
    if last_value_end and stack and _is_value_start(char):
      if stack[-1] == "array" or char == '"':
        output.append(",")
      last_value_end = False

    if char == '"':
      output.append(char)
      in_string = True
      index += 1
      continue

    if char in "{[":
      output.append(char)
      stack.append("object" if char == "{" else "array")
      last_value_end = False
      index += 1
      continue

    if char in "}]":
      output.append(char)
      if stack:
        stack.pop()
      last_value_end = True
      index += 1
      continue

    if char in ",:":
      output.append(char)
      last_value_end = False
      index += 1
      continue

    # Consume literal/number tokens as whole values for delimiter detection.
    if _is_value_start(char):
      start = index
      index += 1
      while index < len(raw) and raw[index] not in " \t\r\n,]}:":
        index += 1
      output.append(raw[start:index])
      last_value_end = True
      continue

    # Preserve other characters as-is.
    output.append(char)
    index += 1

  return "".join(output)


def _is_value_start(char: str) -> bool:
  """Identify token starts so missing commas are inserted safely."""
  if char in '"{[':
    return True

  if char.isdigit() or char == "-":
    return True

  return char in {"t", "f", "n"}
