import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    return _NON_ALNUM.sub("-", text.lower()).strip("-") or "item"


async def unique_slug(db: AsyncSession, model, text: str) -> str:
    """Slug for ``text`` that is not yet used by ``model.slug`` (``-1``, ``-2``... on collision)."""
    base = slugify(text)
    slug, counter = base, 1
    while (await db.execute(select(model.id).where(model.slug == slug))).first() is not None:
        slug = f"{base}-{counter}"
        counter += 1
    return slug
