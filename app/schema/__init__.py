"""Schema package exports."""

from .sql import ApiUsageLog, CreditTransaction, CreditTransactionType, JumpStatus, UserCredits, UserJump, UserToolPrompt

__all__ = ["ApiUsageLog", "CreditTransaction", "CreditTransactionType", "JumpStatus", "UserCredits", "UserJump", "UserToolPrompt"]
