"""Rule-based Jump naming used when the model's name cannot be parsed."""

from __future__ import annotations

import re

from app.ai.pipeline.contracts import GenerationRequest

MAX_NAME_CHARS = 50
DEFAULT_NAME = "AI Transformation"

_STOP_WORDS = frozenset(
  {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "can", "may", "might", "must", "shall",
    "i", "me", "my", "we", "us", "our", "you", "your", "he", "him", "his", "she", "her",
    "it", "its", "they", "them", "their", "this", "that", "these", "those",
    "want", "need", "like", "get", "make", "use", "help", "work", "find", "create",
  }
)  # fmt: skip
_PRIORITY_RE = re.compile(r"^(ai|automation|machine|learning|data|analytics|digital|tech|business|marketing|sales|customer|process|strategy|growth|revenue|efficiency|productivity)")
_NON_WORD_RE = re.compile(r"[^\w\s]")


def extract_keywords(text: str, max_words: int = 2) -> list[str]:
  """Pick meaningful words from free text, favouring business and AI terms."""
  if not text.strip():
    return []

  words = [word for word in _NON_WORD_RE.sub(" ", text.lower()).split() if len(word) > 2 and word not in _STOP_WORDS and not word.isdigit()]
  # Look a little further than needed so priority words have a chance to surface.
  candidates = words[: max_words * 2]
  priority = [word for word in candidates if _PRIORITY_RE.match(word)]
  ordered = priority + [word for word in candidates if word not in priority]
  return ordered[:max_words]


def format_jump_name(name: str) -> str:
  """Title-case a name and cap its length."""
  return " ".join(word.capitalize() for word in name.split())[:MAX_NAME_CHARS]


def generate_jump_name(request: GenerationRequest) -> str:
  """Derive a short Jump name from the goals, challenges and industry."""
  keywords = extract_keywords(request.goals, 2)
  if keywords:
    base = " ".join(keywords)
  else:
    challenge_keywords = extract_keywords(request.challenges, 1)
    base = challenge_keywords[0] if challenge_keywords else DEFAULT_NAME

  if request.industry:
    base = f"{base} {request.industry}"

  return format_jump_name(base)
