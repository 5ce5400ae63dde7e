import html as html_lib
import re
from typing import List, Tuple

IMG_TAG_RE = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
ATTR_RE = r"""(?<![\w-]){name}\s*=\s*["']([^"']*)["']"""

SECTION_HINTS = [
    ("hero", "hero banner"),
    ("about", "team office professional"),
    ("feature", "feature illustration"),
    ("service", "service professional"),
    ("product", "product showcase"),
    ("contact", "contact office"),
    ("gallery", "gallery showcase"),
    ("testimonial", "testimonial people professional"),
]


def _attr(tag: str, name: str) -> str:
    match = re.search(ATTR_RE.format(name=name), tag, re.IGNORECASE)
    return match.group(1) if match else ""


def extract_image_placeholders(html: str) -> List[Tuple[str, str]]:
    """(id, alt) for every <img> carrying both attributes"""
    placeholders = []
    for tag in IMG_TAG_RE.findall(html):
        image_id = _attr(tag, "id")
        alt = _attr(tag, "alt")
        if image_id and alt:
            placeholders.append((image_id, alt))
    return placeholders


def enhance_search_term(term: str, section_id: str, section_name: str, website_prompt: str) -> str:
    """Turn placeholder alt text into a stock-photo query"""
    search_term = re.sub("placeholder", "", term, flags=re.IGNORECASE).strip()

    if len(search_term) < 5:
        hint = "professional"
        for keyword, suffix in SECTION_HINTS:
            if keyword in section_id.lower() or keyword in section_name.lower():
                hint = suffix
                break
        search_term = f"{website_prompt} {hint}"

    return f"{search_term} high quality professional"


def replace_image(html: str, image_id: str, alt: str, url: str) -> str:
    """Swap the placeholder <img> with the given id for one pointing at url"""
    tag_re = re.compile(r"<img\b[^>]*(?<![\w-])id\s*=\s*[\"']" + re.escape(image_id) + r"[\"'][^>]*>", re.IGNORECASE)
    replacement = (
        f'<img id="{html_lib.escape(image_id)}" src="{html_lib.escape(url)}" '
        f'alt="{html_lib.escape(alt)}" class="stock-img">'
    )
    return tag_re.sub(lambda _: replacement, html)
