"""Utility-class inspection for rendered elements."""

from __future__ import annotations

import re
from typing import List, Optional

from ..models import BackgroundImageMetadata

# Classes that change layout; checked before the text-style patterns because
# several of them (``text-center``, ``bg-cover``) also look like colours.
LAYOUT_CLASS_PATTERNS = [
    re.compile(r"^text-(left|center|right|justify|start|end)$"),
    re.compile(r"^text-(wrap|nowrap|balance|pretty|ellipsis|clip)$"),
    re.compile(r"^align-"),
    re.compile(r"^bg-(fixed|local|scroll)$"),
    re.compile(r"^bg-(auto|cover|contain)$"),
    re.compile(r"^bg-(repeat|no-repeat|repeat-x|repeat-y|repeat-round|repeat-space)$"),
    re.compile(r"^bg-clip-"),
    re.compile(r"^bg-origin-"),
    re.compile(r"^bg-(top|bottom|left|right|center)$"),
    re.compile(r"^bg-(top|bottom)-(left|right)$"),
]

TEXT_STYLE_PATTERNS = [
    re.compile(r"^font-(thin|extralight|light|normal|medium|semibold|bold|extrabold|black|\d+)$"),
    re.compile(r"^(italic|not-italic)$"),
    re.compile(r"^(underline|overline|line-through|no-underline)$"),
    re.compile(r"^decoration-[\w-]+$"),
    re.compile(r"^underline-offset-"),
    re.compile(r"^(uppercase|lowercase|capitalize|normal-case)$"),
    re.compile(r"^text-[\w-]+$"),
    re.compile(r"^bg-[\w-]+$"),
    re.compile(r"^tracking-"),
    re.compile(r"^leading-"),
]

_BG_IMAGE = re.compile(r"""^bg-\[url\(['"]?([^'")\]]+)['"]?\)\]$""")
_BG_SIZE = re.compile(r"^bg-(auto|cover|contain)$")
_BG_POSITION = re.compile(
    r"^bg-(center|top|bottom|left|right|top-left|top-right|bottom-left|bottom-right)$"
)
_BG_REPEAT = re.compile(r"^bg-(repeat|no-repeat|repeat-x|repeat-y|repeat-round|repeat-space)$")


def split_classes(class_attr: Optional[str]) -> List[str]:
    return (class_attr or "").split()


def is_text_style_class(name: str) -> bool:
    if any(pattern.match(name) for pattern in LAYOUT_CLASS_PATTERNS):
        return False
    return any(pattern.match(name) for pattern in TEXT_STYLE_PATTERNS)


def has_only_text_style_classes(class_attr: Optional[str]) -> bool:
    """True when there is at least one class and every class only styles text."""
    classes = split_classes(class_attr)
    return bool(classes) and all(is_text_style_class(name) for name in classes)


def extract_background_image(class_attr: Optional[str]) -> Optional[BackgroundImageMetadata]:
    """Background image metadata, or ``None`` without a ``bg-[url(...)]`` class.

    Size, position and repeat classes are only reported alongside an image.
    """
    image_class = image_url = size = position = repeat = None
    for name in split_classes(class_attr):
        match = _BG_IMAGE.match(name)
        if match:
            image_class, image_url = name, match.group(1)
        elif _BG_SIZE.match(name):
            size = name
        elif _BG_POSITION.match(name):
            position = name
        elif _BG_REPEAT.match(name):
            repeat = name
    if image_class is None or image_url is None:
        return None
    return BackgroundImageMetadata(
        bg_image_class=image_class,
        image_url=image_url,
        bg_size=size,
        bg_position=position,
        bg_repeat=repeat,
    )


__all__ = [
    "LAYOUT_CLASS_PATTERNS",
    "TEXT_STYLE_PATTERNS",
    "extract_background_image",
    "has_only_text_style_classes",
    "is_text_style_class",
]
