"""Escaping of free text for inclusion in LaTeX documents."""

from __future__ import annotations

import re

_LATEX_REPLACEMENTS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}
_LATEX_SPECIAL = re.compile(
    "|".join(re.escape(char) for char in _LATEX_REPLACEMENTS)
)


def escape_latex(text: str) -> str:
    """Escape LaTeX special characters in ``text``.

    Replacement happens in a single pass so the backslashes introduced for
    one character are never escaped again by another rule.

    >>> escape_latex("50% of $5 & more")
    '50\\\\% of \\\\$5 \\\\& more'

    """
    return _LATEX_SPECIAL.sub(lambda match: _LATEX_REPLACEMENTS[match.group(0)], text)
