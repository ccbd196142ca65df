import re


def slugify(value: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace/dashes into single dashes."""
    slug = value.strip().lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")
