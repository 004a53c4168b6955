#!/usr/bin/env python3
"""
Utility Functions Module
Helpers shared by the HTTP layer and the gateway service
"""

import json
import logging
import traceback
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def log_exception(func_name: str, exception: Exception) -> None:
    """Log exception with traceback"""
    logger.error(f"Exception in {func_name}: {exception}")
    logger.error(f"Traceback: {traceback.format_exc()}")


def create_response_dict(success: bool, message: str = '') -> Dict[str, Any]:
    """Standard /set_target response body"""
    return {
        'success': success,
        'message': message,
    }


def parse_json_safely(payload: str) -> Tuple[Optional[Any], Optional[str]]:
    """Safely parse JSON payload and return data and error message"""
    try:
        return json.loads(payload), None
    except ValueError as e:  # JSONDecodeError, oversized int literals
        error_msg = f"Invalid JSON: {str(e)}"
        logger.error(f"{error_msg}. Payload: {truncate_string(payload)}")
        return None, error_msg


def truncate_string(text: str, max_length: int = 200) -> str:
    """Truncate string to maximum length with ellipsis"""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
