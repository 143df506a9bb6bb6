"""
Flask CLI commands for store setup.

Commands:
- flask init-db: Create the database tables
- flask seed-demo: Load the demo catalog and group discount schemes
- flask create-coupon: Create a coupon
- flask create-scheme: Create a buy-X-get-Y group discount scheme
"""

import click
from decimal import Decimal
from pos.database import create_all, drop_all, get_session
from pos.models import Product, Coupon, CouponKind, GroupDiscountScheme

DEMO_PRODUCTS = [
    dict(name='Espresso', barcode='1001', brand='NexusBrew', price=Decimal('150.00'), mrp=Decimal('200.00'),
         discount_rate=Decimal('25.0'), cost=Decimal('50.00'), stock=100, category='Beverages', tax_rate=Decimal('18')),
    dict(name='Cappuccino', barcode='1002', brand='NexusBrew', price=Decimal('180.00'), mrp=Decimal('250.00'),
         discount_rate=Decimal('28.0'), cost=Decimal('60.00'), stock=100, category='Beverages', tax_rate=Decimal('18')),
    dict(name='Croissant', barcode='2001', brand='BakeryBest', price=Decimal('80.00'), mrp=Decimal('100.00'),
         discount_rate=Decimal('20.0'), cost=Decimal('30.00'), stock=50, category='Food', tax_rate=Decimal('5')),
    dict(name='Blueberry Muffin', barcode='2002', brand='BakeryBest', price=Decimal('120.00'), mrp=Decimal('150.00'),
         discount_rate=Decimal('20.0'), cost=Decimal('45.00'), stock=40, category='Food', tax_rate=Decimal('5')),
]

DEMO_SCHEMES = [
    dict(name='Standard BOGO (Buy 1 Get 1)', buy_qty=1, get_qty=1),
    dict(name='Buy 2 Get 1 Free', buy_qty=2, get_qty=1),
]


def seed_demo_data(session) -> int:
    """Insert demo products and schemes if the catalog is empty; returns rows added."""
    if session.query(Product).count():
        return 0
    for data in DEMO_PRODUCTS:
        session.add(Product(**data))
    for data in DEMO_SCHEMES:
        session.add(GroupDiscountScheme(**data))
    session.commit()
    return len(DEMO_PRODUCTS) + len(DEMO_SCHEMES)


def init_cli_commands(app):
    """Register CLI commands with Flask app."""
    
    @app.cli.command('init-db')
    @click.option('--reset', is_flag=True, help='Drop all tables first')
    def init_db_command(reset):
        """Create the database tables."""
        if reset:
            drop_all()
        create_all()
        click.echo(click.style('✅ Database ready.', fg='green'))
    
    @app.cli.command('seed-demo')
    def seed_demo():
        """Load the demo catalog and group discount schemes."""
        session = get_session()
        try:
            added = seed_demo_data(session)
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'❌ Error loading demo data: {str(e)}', fg='red'))
            return
        if not added:
            click.echo(click.style('Catalog already has products; nothing loaded.', fg='yellow'))
            return
        click.echo(click.style(f'✅ Loaded {added} demo rows.', fg='green'))
    
    @app.cli.command('create-coupon')
    @click.option('--code', prompt=True, help='Coupon code, e.g. SUMMER20')
    @click.option('--kind', type=click.Choice(['PERCENT', 'FLAT'], case_sensitive=False), default='PERCENT')
    @click.option('--value', prompt=True, type=click.FloatRange(min=0, min_open=True), help='Percent or flat amount')
    def create_coupon(code, kind, value):
        """Create a coupon."""
        session = get_session()
        code = code.strip()
        
        if session.query(Coupon).filter_by(code=code).first():
            click.echo(click.style(f'❌ A coupon with code {code} already exists.', fg='red'))
            return
        
        try:
            amount = Decimal(str(value)).quantize(Decimal('0.01'))
            coupon = Coupon(code=code, kind=CouponKind(kind.upper()), value=amount, active=True)
            session.add(coupon)
            session.commit()
            click.echo(click.style(f'✅ Coupon {code} created.', fg='green'))
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'❌ Error creating coupon: {str(e)}', fg='red'))
    
    @app.cli.command('create-scheme')
    @click.option('--name', prompt=True, help='Scheme name shown on receipts')
    @click.option('--buy', 'buy_qty', prompt=True, type=click.IntRange(min=1))
    @click.option('--get', 'get_qty', prompt=True, type=click.IntRange(min=1))
    def create_scheme(name, buy_qty, get_qty):
        """Create a buy-X-get-Y group discount scheme."""
        session = get_session()
        try:
            scheme = GroupDiscountScheme(name=name.strip(), buy_qty=buy_qty, get_qty=get_qty, active=True)
            session.add(scheme)
            session.commit()
            click.echo(click.style(f'✅ Scheme "{scheme.name}" created (ID: {scheme.id}).', fg='green'))
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'❌ Error creating scheme: {str(e)}', fg='red'))
