"""Exit codes shared by CLI commands."""

SYSTEM_EXIT_CODE = 1
VALIDATION_EXIT_CODE = 10
DATA_EXIT_CODE = 20
STORE_EXIT_CODE = 30

__all__ = ["DATA_EXIT_CODE", "STORE_EXIT_CODE", "SYSTEM_EXIT_CODE", "VALIDATION_EXIT_CODE"]
