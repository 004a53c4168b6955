#!/usr/bin/env python3
"""
Configuration Management Module

Responsibilities:
- Load the .env file exactly ONCE
- Parse values (inline '# comments' stripped)
- Validate ranges and backend settings
- Provide structured config access

Create ONCE in main.py and pass down. No runtime logic here.
"""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Optional, Dict, Any

from position_gateway.brokers.ninjatrader.oif_client import DEFAULT_POSITION_FILE_TEMPLATE

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("ninjatrader", "paper")
DEFAULT_NT_DATA_DIR = Path.home() / "Documents" / "NinjaTrader 8"


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


class Config:
    """
    Central configuration object.

    Create ONCE in main.py and inject/pass everywhere.
    """

    def __init__(self, env_path: Optional[Path] = None):
        self.env_path: Path = env_path or (
            Path(__file__).resolve().parents[2] / "config_env" / "primary.env"
        )
        self._load_env()
        self._load_values()
        self._validate()

    # ------------------------------------------------------------------
    # ENV LOADING
    # ------------------------------------------------------------------

    def _load_env(self) -> None:
        """Load environment file with security checks."""
        if not self.env_path.exists():
            raise FileNotFoundError(f".env file not found: {self.env_path}")

        if os.name != 'nt':  # Skip on Windows
            mode = self.env_path.stat().st_mode
            if mode & 0o004:  # World-readable
                logger.warning(
                    "⚠️ SECURITY: Environment file is world-readable. "
                    f"Run: chmod 600 {self.env_path}"
                )

        load_dotenv(self.env_path)
        logger.info("Environment configuration loaded successfully")

    # ------------------------------------------------------------------
    # VALUE LOADING
    # ------------------------------------------------------------------

    def _load_values(self) -> None:
        """Load configuration values from environment."""

        # === Server ===
        self.host: str = self._strip_comment(os.getenv("HOST", "0.0.0.0"))
        self.port: int = self._parse_port(os.getenv("PORT", "8003"))
        self.threads: int = self._parse_int(os.getenv("THREADS", "4"), "THREADS", 1, 32)

        # === Account / Backend ===
        self.account: str = self._strip_comment(os.getenv("ACCOUNT", "Sim101"))
        self.backend: str = self._strip_comment(os.getenv("BACKEND", "paper")).lower()

        nt_dir = self._strip_comment(os.getenv("NT_DATA_DIR", ""))
        self.nt_data_dir: Path = Path(nt_dir).expanduser() if nt_dir else DEFAULT_NT_DATA_DIR
        self.nt_position_file_template: str = self._strip_comment(
            os.getenv("NT_POSITION_FILE_TEMPLATE", DEFAULT_POSITION_FILE_TEMPLATE)
        )

        # === Orders ===
        self.order_time_in_force: str = self._strip_comment(
            os.getenv("ORDER_TIME_IN_FORCE", "DAY")
        ).upper()
        self.order_strategy_tag: str = self._strip_comment(
            os.getenv("ORDER_STRATEGY_TAG", "AlgoTrade")
        )

        # === Logging ===
        self.log_dir: str = self._strip_comment(os.getenv("LOG_DIR", "logs"))
        self.log_level: str = self._strip_comment(os.getenv("LOG_LEVEL", "INFO")).upper()

        # === Telegram (optional) ===
        self.telegram_bot_token: Optional[str] = self._strip_comment(os.getenv("TELEGRAM_TOKEN", "")) or None
        self.telegram_chat_id: Optional[str] = self._strip_comment(os.getenv("TELEGRAM_CHAT_ID", "")) or None

    # ------------------------------------------------------------------
    # PARSING HELPERS
    # ------------------------------------------------------------------

    def _parse_port(self, value: str) -> int:
        """Parse and validate port number, stripping comments."""
        try:
            clean_value = self._strip_comment(value)
            port = int(clean_value)
            if not (1024 <= port <= 65535):
                raise ValueError(f"Port must be between 1024-65535, got: {port}")
            return port
        except ValueError as e:
            raise ConfigValidationError(f"Invalid PORT value '{value}': {e}")

    def _strip_comment(self, value: str) -> str:
        """Strip comments from config values (everything after #)."""
        if '#' in value:
            return value.split('#')[0].strip()
        return value.strip()

    def _parse_int(
        self,
        value: str,
        name: str,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None
    ) -> int:
        """Parse and validate integer with optional bounds, stripping comments."""
        try:
            clean_value = self._strip_comment(value)
            num = int(clean_value)
            if min_val is not None and num < min_val:
                raise ValueError(f"{name} must be >= {min_val}, got: {num}")
            if max_val is not None and num > max_val:
                raise ValueError(f"{name} must be <= {max_val}, got: {num}")
            return num
        except ValueError as e:
            raise ConfigValidationError(f"Invalid {name} value '{value}': {e}")

    # ------------------------------------------------------------------
    # VALIDATION
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        """
        Validates:
        - Account presence
        - Backend selection and backend-specific settings
        - Log level
        - Telegram configuration consistency
        """

        # -------------------------------------------------
        # 1️⃣ Account
        # -------------------------------------------------
        if not self.account:
            raise ConfigValidationError("ACCOUNT cannot be empty")

        # -------------------------------------------------
        # 2️⃣ Backend
        # -------------------------------------------------
        if self.backend not in SUPPORTED_BACKENDS:
            raise ConfigValidationError(
                f"BACKEND must be one of {list(SUPPORTED_BACKENDS)}, got: {self.backend}"
            )

        if self.backend == "ninjatrader":
            template = self.nt_position_file_template
            if "{symbol}" not in template:
                raise ConfigValidationError(
                    "NT_POSITION_FILE_TEMPLATE must contain {symbol}"
                )
            try:
                template.format(symbol="X", account="Y")
            except (KeyError, IndexError, ValueError) as e:
                raise ConfigValidationError(
                    f"Invalid NT_POSITION_FILE_TEMPLATE '{template}': {e}"
                )
        else:
            logger.warning("⚠️ PAPER backend selected - no orders reach a real account")

        if not self.order_time_in_force:
            raise ConfigValidationError("ORDER_TIME_IN_FORCE cannot be empty")

        # -------------------------------------------------
        # 3️⃣ Logging
        # -------------------------------------------------
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigValidationError(f"Invalid LOG_LEVEL: {self.log_level}")

        # -------------------------------------------------
        # 4️⃣ Telegram
        # -------------------------------------------------
        has_token = bool(self.telegram_bot_token)
        has_chat = bool(self.telegram_chat_id)

        if has_token != has_chat:
            logger.warning(
                "⚠️ Partial Telegram configuration detected. "
                "Both TELEGRAM_TOKEN and TELEGRAM_CHAT_ID required for Telegram features."
            )
        elif not has_token:
            logger.info("Telegram notifications disabled (optional)")
        else:
            try:
                int(self.telegram_chat_id)
            except ValueError:
                raise ConfigValidationError(
                    f"TELEGRAM_CHAT_ID must be numeric, got: {self.telegram_chat_id}"
                )

        # -------------------------------------------------
        # 5️⃣ Server
        # -------------------------------------------------
        if self.threads > 16:
            logger.warning(
                f"⚠️ THREADS is very high ({self.threads}). This may cause resource exhaustion."
            )

    # ------------------------------------------------------------------
    # STRUCTURED ACCESS
    # ------------------------------------------------------------------

    def get_server_config(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "threads": self.threads,
        }

    def get_backend_config(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "account": self.account,
            "nt_data_dir": self.nt_data_dir,
            "position_file_template": self.nt_position_file_template,
            "time_in_force": self.order_time_in_force,
            "strategy_tag": self.order_strategy_tag,
        }

    def is_telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def get_telegram_config(self) -> Optional[Dict[str, str]]:
        if not self.is_telegram_enabled():
            return None
        return {
            "bot_token": self.telegram_bot_token,
            "chat_id": self.telegram_chat_id,
        }
