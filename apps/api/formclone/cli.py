"""CLI tools for form administration."""

import click

from formclone.core.security import create_session_token
from formclone.db.enums import Role
from formclone.db.models import User
from formclone.db.session import SessionLocal
from formclone.services import form_clone_service


@click.group()
def cli():
    """Form clone CLI tools."""
    pass


@cli.command()
@click.option("--form-id", required=True, type=int, help="ID of the form to clone")
def clone_form(form_id: int):
    """
    Clone a form with its notifications, confirmations and payment feeds.

    Example:
        formclone clone-form --form-id 12
    """
    db = SessionLocal()
    try:
        new_form_id = form_clone_service.clone_form(db, form_id)
        click.echo(f"✓ Cloned form {form_id}")
        click.echo(f"  New form ID: {new_form_id}")
    except form_clone_service.FormServiceError as e:
        click.echo(f"❌ Error duplicating form: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Admin email address")
@click.option("--name", default="Administrator", help="Display name")
def seed_admin(email: str, name: str):
    """
    Create an admin user and print a session token.

    This is the bootstrap command for a fresh database.
    """
    db = SessionLocal()
    try:
        email = email.lower().strip()
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            click.echo(f"❌ User with email '{email}' already exists")
            return

        user = User(email=email, display_name=name, role=Role.ADMIN.value)
        db.add(user)
        db.commit()
        db.refresh(user)

        token = create_session_token(
            user_id=user.id,
            role=user.role,
            token_version=user.token_version,
        )
        click.echo(f"✓ Created admin: {email}")
        click.echo(f"  ID: {user.id}")
        click.echo(f"  Session token: {token}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
