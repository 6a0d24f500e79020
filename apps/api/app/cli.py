"""CLI tools for inspection system administration."""

from datetime import datetime, timezone

import click
from sqlalchemy.exc import SQLAlchemyError

from app.core.security import create_session_token
from app.db.enums import Role
from app.db.models import User
from app.db.session import SessionLocal


@click.group()
def cli():
    """Inspection admin CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="User email address")
@click.option("--name", required=True, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.USER.value,
    show_default=True,
)
def create_user(email: str, name: str, role: str):
    """
    Create a user directly (bootstrap the first admin).

    Example:
        python -m app.cli create-user --email admin@example.com --name "Admin" --role ADMIN
    """
    db = SessionLocal()
    try:
        email = email.strip().lower()
        if db.query(User).filter(User.email == email).first():
            click.echo(f"❌ User {email} already exists")
            return

        user = User(email=email, name=name.strip(), role=role)
        if role != Role.PENDING.value:
            user.approved_at = datetime.now(timezone.utc)
        db.add(user)
        db.commit()
        click.echo(f"✓ Created {role} user {email} ({user.id})")
    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email address")
def promote_admin(email: str):
    """Promote an existing user to ADMIN (approving them if pending)."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            click.echo(f"❌ User {email} not found")
            return

        previous = user.role
        user.role = Role.ADMIN.value
        user.is_active = True
        if user.approved_at is None:
            user.approved_at = datetime.now(timezone.utc)
        user.token_version += 1
        db.commit()
        click.echo(f"✓ {user.email}: {previous} -> {user.role}")
    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--pending", is_flag=True, help="Only users awaiting approval")
def list_users(pending: bool):
    """List users with role and status."""
    db = SessionLocal()
    try:
        query = db.query(User)
        if pending:
            query = query.filter(User.role == Role.PENDING.value)
        users = query.order_by(User.created_at).all()
        if not users:
            click.echo("No users found")
            return
        for user in users:
            state = "active" if user.is_active else "inactive"
            click.echo(f"{user.email:<40} {user.role:<8} {state:<8} {user.name}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email address")
def issue_token(email: str):
    """Print a session token for a user (API clients and local testing)."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            click.echo(f"❌ User {email} not found")
            return
        click.echo(create_session_token(user.id, user.role, user.token_version))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
