#!/usr/bin/env python3
"""
Postprocessing helpers for the GelaBoca assistant.

Formatting of replies, prices and the product reference handed to the UI.
"""

import re
from urllib.parse import unquote


def format_price(value: float) -> str:
    """Price as shown in prompts and fallback replies, e.g. ``R$ 8.90``."""
    return f"R$ {value:.2f}"


def format_response(response: str) -> str:
    """
    Tidy a raw model reply for display.

    Collapses runs of spaces and tabs, trims the ends and drops the quotes
    models sometimes wrap the whole reply in. Line breaks are kept.
    """
    if not response:
        return ""
    response = re.sub(r"[ \t]+", " ", response).strip()
    if len(response) >= 2 and response[0] == response[-1] and response[0] in "\"'“”":
        response = response[1:-1].strip()
    elif response.startswith("“") and response.endswith("”"):
        response = response[1:-1].strip()
    return response


def make_slug(name: str) -> str:
    """
    Slug used for the "view product" link.

    The product page looks products up by exact name, so the slug is the
    name itself, untouched; the client URL-encodes it.
    """
    return name


def slug_to_name(slug: str) -> str:
    return unquote(slug)


def product_question(name: str) -> str:
    """Message the product page pre-fills when the customer asks the assistant."""
    return f"GelinhIA, me fale sobre o produto {name}."
