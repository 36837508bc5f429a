"""
Text and Display Helpers
========================

Small data-shaping functions shared by the admin modules and exposed to
templates as Jinja filters.
"""

import random
import re
import string
import unicodedata
from datetime import datetime
from typing import Optional

_ID_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def slugify(text):
    """
    Convert text into a URL-friendly slug

    - strips accents
    - lowercases
    - turns spaces and punctuation into hyphens
    - never leaves doubled, leading or trailing hyphens

    >>> slugify("Café de l'Été")
    'cafe-de-l-ete'
    """
    text = unicodedata.normalize('NFD', str(text))
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    text = text.lower().strip()
    text = re.sub(r'\s+', '-', text)
    text = re.sub(r'[^\w-]+', '-', text)
    text = re.sub(r'-{2,}', '-', text)
    return text.strip('-')


def truncate_text(text, length=100):
    """Cut text to ``length`` characters and append an ellipsis when it was longer"""
    if not text:
        return ''
    if len(text) <= length:
        return text
    return text[:length] + '...'


def generate_unique_id(length=8):
    """Random alphanumeric identifier"""
    return ''.join(random.choice(_ID_ALPHABET) for _ in range(length))


def format_date(value: Optional[datetime]) -> str:
    """Human readable date and time, e.g. '12 March 2024 at 14:30'"""
    if value is None:
        return 'Unknown date'
    return f"{value.day} {value.strftime('%B %Y')} at {value.strftime('%H:%M')}"


def format_change(value):
    """Signed percentage for stat cards: '+12%', '-3%', '0%'"""
    if value > 0:
        return f"+{value}%"
    return f"{value}%"
