import asyncio
from pathlib import Path
import typer

import blog.db_models # noqa: F401

from blog.database import async_session_factory
from blog.users.models import Role
from blog.users.schema import UserCreate
from blog.users.service import create_user
from blog.articles import service as article_service
from blog.articles.services.translation import get_translator

cli = typer.Typer()


@cli.command(name="create-admin")
def createadmin(
    name: str = typer.Option(..., "--name", "-n", help="Admin's full name."),
    email: str = typer.Option(..., "--email", "-e", help="Admin's email address."),
    password: str = typer.Option(..., "--password", "-p", help="Admin's secure password."),
):
    """
    Creates a new user with ADMIN privileges in the database.
    """
    async def main():
        async with async_session_factory() as session:
            user = await create_user(
                UserCreate(name=name, email=email, password=password), db=session, role=Role.ADMIN
            )
            print(f"✅ Admin user created: id={user.id}, email={user.email}")

    asyncio.run(main())


@cli.command(name="translate-article")
def translate_article(
    article_id: int = typer.Option(..., "--id", help="Article ID to (re)translate."),
):
    """
    Translates an article's title, excerpt and content and stores the English fields.
    """
    async def main():
        async with async_session_factory() as session:
            post = await article_service.get_post(session, article_id)
            if post is None:
                print(f"❌ Article {article_id} not found")
                raise typer.Exit(code=1)
            post, outcomes = await article_service.translate_post(session, post, get_translator())
            for field, outcome in outcomes:
                print(
                    f"   {field}: chunks={len(outcome.results)}, "
                    f"succeeded={outcome.succeeded}, fell_back={outcome.fell_back}"
                )
            print(f"✅ Article {article_id} translated (slug_en={post.slug_en})")

    asyncio.run(main())


@cli.command(name="translate-file")
def translate_file(
    file: str = typer.Option(..., "--file", "-f", help="HTML/text file to translate."),
    output: str | None = typer.Option(None, "--output", "-o", help="Write the translation here instead of stdout."),
):
    """
    Runs a file through the chunked translation pipeline without touching the database.
    """
    file_path = Path(file)
    if not file_path.exists():
        print(f"❌ File not found: {file}")
        raise typer.Exit(code=1)

    text = file_path.read_text(encoding="utf-8")
    outcome = asyncio.run(get_translator().translate_document(text))

    if output:
        Path(output).write_text(outcome.text, encoding="utf-8")
        print(
            f"✅ Wrote {output}: chunks={len(outcome.results)}, "
            f"succeeded={outcome.succeeded}, fell_back={outcome.fell_back}"
        )
    else:
        print(outcome.text)


if __name__ == "__main__":
    cli()
