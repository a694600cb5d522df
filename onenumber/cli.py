import click
from flask.cli import with_appcontext


@click.command('create-admin')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--first-name', default='Admin')
@click.option('--last-name', default='User')
@with_appcontext
def create_admin(email, password, first_name, last_name):
    """Create an admin account"""
    from onenumber.models import Admin
    from onenumber.services import get_user_service

    if Admin.query.filter_by(email=email.strip().lower()).first():
        click.echo(f"❌ Admin {email} already exists")
        return

    admin = get_user_service().create_admin(email, password, first_name, last_name)
    click.echo(f"✅ Admin created: {admin.email} ({admin.id})")


@click.command('check-expired-subscriptions')
@with_appcontext
def check_expired_subscriptions():
    """Expire subscriptions past their end date"""
    from onenumber.tasks import run_expired_subscriptions_check

    click.echo("🔍 Checking expired subscriptions...")
    result = run_expired_subscriptions_check()

    if result['success']:
        click.echo(f"✅ Checked: {result['subscriptions_checked']}, expired: {result['subscriptions_expired']}")
    else:
        click.echo(f"❌ Expiry check failed: {result['error']}")


@click.command('send-expiration-reminders')
@with_appcontext
def send_expiration_reminders():
    """Send 7, 3 and 1 day renewal reminders"""
    from onenumber.tasks import check_and_process_expiring_subscriptions

    result = check_and_process_expiring_subscriptions()

    if result['success']:
        click.echo(f"✅ Reminders sent: {result['reminders_sent']}")
        for days, sent in result['by_days'].items():
            click.echo(f"   {days} day(s): {sent}")
    else:
        click.echo(f"❌ Reminder sweep failed: {result['error']}")


@click.command('release-reservations')
@with_appcontext
def release_reservations():
    """Return numbers with lapsed reservations to the pool"""
    from onenumber.services import get_phone_number_service

    result = get_phone_number_service().release_expired_reservations()
    click.echo(f"✅ Released {len(result['released'])} reservation(s)")
    for number in result['released']:
        click.echo(f"   {number}")


def register_commands(app):
    for command in (create_admin, check_expired_subscriptions, send_expiration_reminders, release_reservations):
        app.cli.add_command(command)
