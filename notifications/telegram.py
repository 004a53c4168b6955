#!/usr/bin/env python3
"""
Telegram Notifier Module
Operator alerts for the position gateway, sent with plain HTTP requests.

A failed notification is logged and reported as False; it never affects
the outcome of a reconciliation.
"""

import logging
from datetime import datetime
from typing import Iterable, Literal

import requests

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Handle all Telegram notifications using simple HTTP requests"""

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.base_url = f"https://api.telegram.org/bot{bot_token}"
        self.session = requests.Session()
        self.is_connected = False

    def test_connection(self) -> bool:
        """Test Telegram bot connection"""
        try:
            response = self.session.get(f"{self.base_url}/getMe", timeout=self.timeout)

            if response.status_code != 200:
                logger.error(f"Telegram bot test failed: HTTP {response.status_code}")
                self.is_connected = False
                return False

            bot_info = response.json()
            if not bot_info.get('ok'):
                logger.error(f"Telegram bot test failed: {bot_info}")
                self.is_connected = False
                return False

            logger.info(f"Telegram bot connected successfully: {bot_info['result']['first_name']}")
            self.is_connected = True
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to test Telegram connection: {e}")
            self.is_connected = False
            return False

    def send_message(
        self,
        message: str,
        parse_mode: Literal["HTML", "MarkdownV2"] = "HTML"
    ) -> bool:
        """Send message to Telegram using HTTP request"""
        if not self.is_connected:
            logger.warning("Telegram not connected, attempting to reconnect...")
            if not self.test_connection():
                logger.error("Failed to reconnect to Telegram")
                return False

        try:
            response = self.session.post(
                f"{self.base_url}/sendMessage",
                json={
                    'chat_id': self.chat_id,
                    'text': message,
                    'parse_mode': parse_mode,
                },
                timeout=self.timeout,
            )

            if response.status_code != 200:
                logger.error(f"Failed to send Telegram message: HTTP {response.status_code}")
                logger.error(f"Response: {response.text}")
                return False

            response_data = response.json()
            if not response_data.get('ok'):
                logger.error(f"Telegram API error: {response_data}")
                return False

            logger.debug("Telegram message sent successfully")
            return True

        except requests.exceptions.Timeout:
            logger.error("Telegram message timeout")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Telegram request error: {e}")
            return False

    # ------------------------------------------------------------------
    # MESSAGE TEMPLATES
    # ------------------------------------------------------------------

    def send_startup_message(self, host: str, port: int, account: str, backend: str) -> bool:
        """Send gateway startup notification"""
        message = (
            f"🚀 <b>POSITION GATEWAY STARTING</b>\n"
            f"📅 {datetime.now().strftime('%A, %d %B %Y')}\n"
            f"⏰ {datetime.now().strftime('%H:%M:%S')}\n"
            f"━━━━━━━━━━━━━━━━━━━━\n\n"
            f"🏦 Account: {account}\n"
            f"🔌 Backend: {backend}\n"
            f"🌐 Server: http://{host}:{port}\n\n"
            f"⏳ Please wait for READY confirmation..."
        )
        return self.send_message(message)

    def send_ready_message(self, host: str, port: int) -> bool:
        """Send gateway ready notification"""
        message = (
            f"✅ <b>GATEWAY READY - ACCEPTING TARGETS</b>\n"
            f"⏰ {datetime.now().strftime('%H:%M:%S')}\n"
            f"🌐 POST http://{host}:{port}/set_target"
        )
        return self.send_message(message)

    def send_partial_execution(
        self,
        symbol: str,
        account: str,
        completed: Iterable[str],
        failed_step: str,
        reason: str,
    ) -> bool:
        """Partial execution needs manual reconciliation by the operator"""
        message = (
            f"🚨 <b>PARTIAL EXECUTION - CHECK ACCOUNT</b>\n"
            f"📈 Symbol: {symbol}\n"
            f"🏦 Account: {account}\n"
            f"✅ Completed: {', '.join(completed)}\n"
            f"❌ Failed: {failed_step}\n"
            f"🚫 Error: {reason}\n"
            f"⏰ {datetime.now().strftime('%H:%M:%S')}"
        )
        return self.send_message(message)

    def send_error_message(self, title: str, error: str) -> bool:
        """Send error notification"""
        message = (
            f"❌ <b>{title}</b>\n"
            f"🚫 {error}\n"
            f"⏰ {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        )
        return self.send_message(message)
