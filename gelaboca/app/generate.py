#!/usr/bin/env python3
"""
Generation module for the GelaBoca assistant.

This module handles text completion using the chat completions endpoint.
"""

import requests
from typing import Dict, List, Optional
from .config import Config
from .errors import CompletionError
from ..utils.logger import get_logger

logger = get_logger()


class GenerationClient:
    """Client for generating answers using an OpenAI-compatible chat API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        """Initialize the generation client."""
        self.api_key = api_key if api_key is not None else Config.OPENAI_API_KEY
        self.llm_model = model or Config.CHAT_MODEL
        self.api_url = f"{Config.OPENAI_BASE_URL}/chat/completions"
        self.http = session or requests.Session()

    def complete(self, messages: List[Dict[str, str]], max_tokens: int = 200,
                 temperature: float = 0.7) -> str:
        """
        Run a chat completion.

        Args:
            messages: Role-tagged prompt messages
            max_tokens: Completion token cap
            temperature: Sampling temperature

        Returns:
            The stripped completion text; empty string when the model
            returned no content.
        """
        if not self.api_key:
            raise CompletionError("OPENAI_API_KEY is not configured")

        payload = {
            "model": self.llm_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        try:
            response = self.http.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=Config.LLM_TIMEOUT,
            )
            if response.status_code != 200:
                logger.debug("Completion error body: %s", response.text)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Completion request failed: %s", e)
            raise CompletionError(str(e)) from e
        except ValueError as e:
            raise CompletionError(f"invalid JSON in completion response: {e}") from e

        try:
            choices = data.get("choices") or []
            if not choices:
                return ""
            content = (choices[0].get("message") or {}).get("content")
        except AttributeError as e:
            raise CompletionError(f"unexpected completion response: {e}") from e
        return (content or "").strip()
