"""
HTML-injection check for String parameters.

Markup is anything the HTML parser turns into an element, a comment, or a
declaration. Plain text that merely contains '<' or '&' (e.g. "a < b") passes.
"""

from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

_MARKUP_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


def find_markup(value: str) -> Optional[str]:
    """
    Return a short description of the first markup found in value, or None.

    Args:
        value: String content supplied for a parameter

    Returns:
        e.g. "<script>" or "comment", None if the value is plain text
    """
    if not value or '<' not in value:
        return None
    soup = BeautifulSoup(value, 'html.parser')
    tag = soup.find()
    if tag is not None:
        return f"<{tag.name}>"
    for node in soup.descendants:
        if isinstance(node, _MARKUP_STRINGS):
            return type(node).__name__.lower()
    return None


def contains_markup(value: str) -> bool:
    return find_markup(value) is not None


def markup_errors(name: str, value: str) -> List[str]:
    """Error messages for one parameter value (empty when it is plain text)."""
    found = find_markup(value)
    if found is None:
        return []
    return [f"In field [{name}] markup is not allowed (found {found})"]
