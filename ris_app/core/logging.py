import logging
from typing import Any

logger = logging.getLogger("audit")

def log_user_action(user_id: int, action: str, entity: str, entity_id: Any = None, details: str = ""):
    """Log user actions for audit trail"""
    message = f"User {user_id} performed {action} on {entity} {entity_id or ''}".rstrip()
    if details:
        message = f"{message} - {details}"
    logger.info(message)
