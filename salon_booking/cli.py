"""`flask seed`: staff accounts and the starting service catalog"""
from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import select

from salon_booking.models.service import Category, Service
from salon_booking.models.user import ROLE_ADMIN, ROLE_STYLIST, User

CATEGORIES = [
    ('Hair Styling', 'Professional hair styling and cutting services'),
    ('Facial Treatments', 'Rejuvenating facial treatments and skincare services'),
    ('Nail Care', 'Manicure, pedicure, and nail art services'),
    ('Massage Therapy', 'Relaxing and therapeutic massage services'),
]

# name, price, minutes, category
SERVICES = [
    ('Haircut', '30.00', 30, 'Hair Styling'),
    ('Hair Coloring', '80.00', 120, 'Hair Styling'),
    ('Hair Styling', '40.00', 45, 'Hair Styling'),
    ('Hair Treatment', '50.00', 60, 'Hair Styling'),
    ('Hair Extensions', '200.00', 180, 'Hair Styling'),
    ('Basic Facial', '60.00', 60, 'Facial Treatments'),
    ('Deep Cleansing Facial', '80.00', 90, 'Facial Treatments'),
    ('Anti-Aging Facial', '100.00', 90, 'Facial Treatments'),
    ('Acne Treatment', '70.00', 60, 'Facial Treatments'),
    ('Skin Rejuvenation', '120.00', 120, 'Facial Treatments'),
    ('Basic Manicure', '25.00', 30, 'Nail Care'),
    ('Basic Pedicure', '35.00', 45, 'Nail Care'),
    ('Gel Nails', '45.00', 60, 'Nail Care'),
    ('Nail Art', '30.00', 45, 'Nail Care'),
    ('Nail Repair', '20.00', 30, 'Nail Care'),
    ('Swedish Massage', '70.00', 60, 'Massage Therapy'),
    ('Deep Tissue Massage', '90.00', 60, 'Massage Therapy'),
    ('Sports Massage', '80.00', 60, 'Massage Therapy'),
    ('Hot Stone Massage', '100.00', 90, 'Massage Therapy'),
    ('Couples Massage', '150.00', 90, 'Massage Therapy'),
]


def _seed_account(session, email, role, password, first_name, last_name):
    email = email.strip().lower()
    if session.execute(select(User.id).where(User.email == email)).first() is not None:
        return 0
    session.add(User(email, first_name, last_name, password=password, role=role))
    return 1


def seed_database(session, admin_email, password, stylist_emails=()):
    """Insert whatever is missing; existing rows (matched by email or name) are left alone"""
    accounts = _seed_account(session, admin_email, ROLE_ADMIN, password, 'Salon', 'Admin')
    for email in stylist_emails:
        first_name = email.split('@')[0].replace('.', ' ').title()
        accounts += _seed_account(session, email, ROLE_STYLIST, password, first_name, 'Stylist')

    categories = {c.name: c for c in session.execute(select(Category)).scalars()}
    new_categories = 0
    for name, description in CATEGORIES:
        if name not in categories:
            categories[name] = Category(name, description)
            session.add(categories[name])
            new_categories += 1

    existing_services = set(session.execute(select(Service.name)).scalars())
    new_services = 0
    for name, price, minutes, category in SERVICES:
        if name in existing_services:
            continue
        session.add(Service(name, Decimal(price), minutes, category=categories[category]))
        new_services += 1

    return accounts, new_categories, new_services


@click.command('seed')
@click.option('--admin-email', default='admin@salon.local', show_default=True, envvar='SEED_ADMIN_EMAIL')
@click.option('--stylist', 'stylist_emails', multiple=True, help='Email of a stylist account to create (repeatable).')
@click.option('--password', envvar='SEED_PASSWORD', prompt=True, hide_input=True, confirmation_prompt=True,
              help='Password for every account created by this run.')
@with_appcontext
def seed_command(admin_email, stylist_emails, password):
    """Create the admin account, stylists and the service catalog."""
    if len(password) < 8:
        raise click.BadParameter('must be at least 8 characters', param_hint='--password')

    transactions = current_app.extensions['transaction_manager']
    accounts, categories, services = transactions.run(
        lambda session: seed_database(session, admin_email, password, stylist_emails)
    )
    click.echo(f"Seeded {accounts} account(s), {categories} category(ies), {services} service(s).")


def init_app(app):
    app.cli.add_command(seed_command)
