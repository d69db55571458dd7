import pytest

from blog.config import settings
from blog.slugs import ensure_unique_slug, generate_slug
from blog.articles.models import Post
from blog.tags.models import Tag
from blog.users.models import Role


@pytest.mark.parametrize("title, override, expected", [
    ("Café du Monde!", None, "cafe-du-monde"),
    ("  L'été à Paris  ", None, "lete-a-paris"),
    ("Bonjour le monde", "Mon Slug Perso", "mon-slug-perso"),
    ("Bonjour le monde", "   ", "bonjour-le-monde"),
    ("C++ & Python (3.12)", None, "c-python-312"),
])
def test_generate_slug(title, override, expected):
    assert generate_slug(title, override) == expected


async def test_ensure_unique_slug_appends_counter(db):
    db.add_all([Tag(name="Python", slug="python"), Tag(name="Python 1", slug="python-1")])
    await db.commit()

    assert await ensure_unique_slug(db, Tag, "python") == "python-2"
    assert await ensure_unique_slug(db, Tag, "rust") == "rust"


async def test_ensure_unique_slug_ignores_own_row(db):
    tag = Tag(name="Python", slug="python")
    db.add(tag)
    await db.commit()

    assert await ensure_unique_slug(db, Tag, "python", exclude_id=tag.id) == "python"


async def test_ensure_unique_slug_empty_base(db):
    assert await ensure_unique_slug(db, Tag, "") == "untitled"


async def test_ensure_unique_slug_is_bounded(db, monkeypatch):
    monkeypatch.setattr(settings, "SLUG_MAX_ATTEMPTS", 2)
    db.add_all([Tag(name="X", slug="x"), Tag(name="X 1", slug="x-1")])
    await db.commit()

    slug = await ensure_unique_slug(db, Tag, "x")

    assert slug.startswith("x-")
    assert slug not in ("x", "x-1")
    assert len(slug) == len("x-") + 8


async def _post(db, author, category, slug, **fields):
    post = Post(title=slug, slug=slug, content="<p>x</p>", author_id=author.id, category_id=category.id, **fields)
    db.add(post)
    await db.commit()
    return post


async def test_english_slug_skips_original_slugs_of_other_posts(db, make_user, category):
    author = await make_user(Role.AUTHOR)
    await _post(db, author, category, "hello")
    other = await _post(db, author, category, "bonjour")

    slug = await ensure_unique_slug(db, Post, "hello", exclude_id=other.id, column="slug_en", shared_with=("slug",))
    assert slug == "hello-1"

    # 자기 자신의 원문 슬러그와는 겹쳐도 됨
    own = await ensure_unique_slug(db, Post, "bonjour", exclude_id=other.id, column="slug_en", shared_with=("slug",))
    assert own == "bonjour"


async def test_original_slug_skips_english_slugs_of_other_posts(db, make_user, category):
    author = await make_user(Role.AUTHOR)
    await _post(db, author, category, "bonjour", slug_en="hello")

    assert await ensure_unique_slug(db, Post, "hello", shared_with=("slug_en",)) == "hello-1"
