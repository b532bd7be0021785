"""Utility helpers for msgspec message decoding and frame encoding."""

from __future__ import annotations

from typing import Any, TypeVar

import msgspec

_encoder = msgspec.json.Encoder()

T = TypeVar("T", bound=msgspec.Struct)


def decode_msgspec_text(text: str | bytes, struct_type: type[T]) -> T:
  """Decode a WebSocket text message into a msgspec.Struct value."""
  return msgspec.json.decode(text, type=struct_type)


def encode_json_text(payload: Any) -> str:
  """Encode a payload as compact JSON text for WebSocket frames."""
  return _encoder.encode(payload).decode("utf-8")


def encode_sse_frame(payload: Any) -> bytes:
  """Encode one Server-Sent Events `data:` frame terminated by a blank line."""
  return b"data: " + _encoder.encode(payload) + b"\n\n"
