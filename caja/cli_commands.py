"""
Flask CLI commands for setup and maintenance.

Commands:
- flask init-db: Create tables and indexes
- flask create-store: Create a store
- flask create-user: Create a cashier/owner and link it to a store
- flask sweep-rate-limits: Drop idle rate-limit windows
"""

import click
import re
from sqlalchemy.exc import SQLAlchemyError
from caja import database
from caja.models import Store, AppUser, StoreUser, UserRole
from caja.services.rate_limit_service import get_rate_limiter


EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def _slugify(name):
    slug = re.sub(r'[^a-z0-9]+', '-', name.strip().lower()).strip('-')
    return slug or 'negocio'


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table (and the open-session partial index)."""
        database.create_schema()
        click.echo(click.style('✅ Tablas creadas.', fg='green'))

    @app.cli.command('create-store')
    @click.option('--name', prompt=True, help='Nombre del negocio')
    @click.option('--slug', default=None, help='Identificador URL (por defecto derivado del nombre)')
    def create_store(name, slug):
        """Create a store."""
        db_session = database.get_session()
        slug = slug or _slugify(name)

        if db_session.query(Store).filter_by(slug=slug).first():
            click.echo(click.style(f'❌ Ya existe un negocio con el slug: {slug}', fg='red'))
            return

        try:
            store = Store(name=name.strip(), slug=slug, active=True)
            db_session.add(store)
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Error al crear negocio: {str(e)}', fg='red'))
            return

        click.echo(click.style('\n✅ Negocio creado exitosamente!', fg='green', bold=True))
        click.echo(f'   Nombre: {store.name}')
        click.echo(f'   ID: {store.id}')

    @app.cli.command('create-user')
    @click.option('--email', prompt=True, help='Email del usuario')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Contraseña')
    @click.option('--store-id', type=int, required=True, help='Negocio al que pertenece')
    @click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.CASHIER.value)
    @click.option('--full-name', default=None, help='Nombre completo')
    def create_user(email, password, store_id, role, full_name):
        """Create a user and link it to a store."""
        if not re.match(EMAIL_PATTERN, email):
            click.echo(click.style('❌ Email inválido. Use formato: user@example.com', fg='red'))
            return

        if len(password) < 6:
            click.echo(click.style('❌ La contraseña debe tener al menos 6 caracteres.', fg='red'))
            return

        db_session = database.get_session()
        if not db_session.query(Store).filter_by(id=store_id).first():
            click.echo(click.style(f'❌ No existe el negocio #{store_id}', fg='red'))
            return

        if db_session.query(AppUser).filter_by(email=email).first():
            click.echo(click.style(f'❌ Ya existe un usuario con el email: {email}', fg='red'))
            return

        try:
            user = AppUser(email=email, full_name=full_name, active=True)
            user.set_password(password)
            db_session.add(user)
            db_session.flush()

            db_session.add(StoreUser(user_id=user.id, store_id=store_id, role=role, active=True))
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Error al crear usuario: {str(e)}', fg='red'))
            return

        click.echo(click.style('\n✅ Usuario creado exitosamente!', fg='green', bold=True))
        click.echo(f'   Email: {email}')
        click.echo(f'   ID: {user.id}')
        click.echo(f'   Rol: {role} en negocio #{store_id}')

    @app.cli.command('sweep-rate-limits')
    def sweep_rate_limits():
        """Drop rate-limit windows that have no recent hits."""
        dropped = get_rate_limiter().sweep()
        click.echo(f'🧹 Ventanas eliminadas: {dropped}')
