"""
Integration tests for the till JSON API.
"""

import pytest
from decimal import Decimal

from prometheus_client import REGISTRY

from pos.models import Coupon, CouponKind, Product, Sale


def checkouts(outcome):
    return REGISTRY.get_sample_value('pos_checkouts_total', {'outcome': outcome}) or 0


def add(client, product_id, qty=1):
    return client.post('/sales/cart/add', json={'product_id': product_id, 'qty': qty})


class TestCartApi:
    """Tests for cart endpoints."""

    def test_add_and_view_cart(self, client, espresso):
        """Test adding a product returns a fresh breakdown."""
        response = add(client, espresso.id, 2)

        assert response.status_code == 200
        data = response.get_json()
        assert data['item_count'] == 2
        assert Decimal(data['breakdown']['subtotal']) == Decimal('300')
        assert Decimal(data['breakdown']['tax_total']) == Decimal('54')
        assert data['display']['grand_total'] == 'Rs.354.00'

        data = client.get('/sales/cart').get_json()
        assert data['cart']['lines'][0]['name'] == 'Espresso'
        assert data['cart']['lines'][0]['quantity'] == 2

    def test_scan_barcode(self, client, espresso):
        client.post('/sales/cart/add', json={'barcode': '1001'})
        response = client.post('/sales/cart/add', json={'barcode': '1001'})

        assert response.get_json()['cart']['lines'][0]['quantity'] == 2

    def test_numeric_barcode_in_json(self, client, espresso):
        response = client.post('/sales/cart/add', json={'barcode': 1001})

        assert response.status_code == 200
        assert response.get_json()['cart']['lines'][0]['name'] == 'Espresso'

    def test_non_object_json_body(self, client, session):
        response = client.post('/sales/cart/add', json=[1001])

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Missing or invalid product_id'

    def test_unknown_barcode(self, client, session):
        response = client.post('/sales/cart/add', json={'barcode': '9999'})

        assert response.status_code == 404
        assert response.get_json()['status'] == 'error'

    def test_invalid_quantity(self, client, espresso):
        response = add(client, espresso.id, 'two')

        assert response.status_code == 400
        assert response.get_json()['field'] == 'qty'

    def test_increment_decrement_remove(self, client, espresso, croissant):
        espresso_id, croissant_id = espresso.id, croissant.id
        add(client, espresso_id)
        add(client, croissant_id)

        client.post('/sales/cart/increment', json={'product_id': espresso_id})
        data = client.post('/sales/cart/decrement', json={'product_id': croissant_id}).get_json()
        assert [line['quantity'] for line in data['cart']['lines']] == [2, 1]

        data = client.post('/sales/cart/remove', json={'product_id': espresso_id}).get_json()
        assert [line['product_id'] for line in data['cart']['lines']] == [croissant_id]

    def test_line_discount(self, client, espresso):
        espresso_id = espresso.id
        add(client, espresso_id, 2)

        data = client.post('/sales/cart/line-discount', json={'product_id': espresso_id, 'discount': '10'}).get_json()

        assert Decimal(data['breakdown']['item_discount']) == Decimal('20')

    def test_coupon(self, client, espresso, coupon_save10):
        add(client, espresso.id, 2)

        data = client.post('/sales/cart/coupon', json={'code': 'SAVE10'}).get_json()
        assert Decimal(data['breakdown']['coupon_discount']) == Decimal('30')
        assert data['breakdown']['coupon_code'] == 'SAVE10'

        data = client.delete('/sales/cart/coupon').get_json()
        assert Decimal(data['breakdown']['coupon_discount']) == 0

    def test_invalid_coupon(self, client, espresso):
        add(client, espresso.id)

        response = client.post('/sales/cart/coupon', json={'code': 'NOPE'})

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid or inactive coupon'

    def test_numeric_coupon_code(self, client, session, espresso):
        session.add(Coupon(code='2024', kind=CouponKind.FLAT, value=Decimal('20'), active=True))
        session.commit()
        add(client, espresso.id)

        response = client.post('/sales/cart/coupon', json={'code': 999})
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid or inactive coupon'

        data = client.post('/sales/cart/coupon', json={'code': 2024}).get_json()
        assert data['cart']['coupon_code'] == '2024'
        assert Decimal(data['breakdown']['coupon_discount']) == Decimal('20')

    def test_manual_discount_percent(self, client, espresso):
        add(client, espresso.id, 2)

        data = client.post('/sales/cart/manual-discount', json={'kind': 'PERCENT', 'value': '50'}).get_json()

        assert Decimal(data['breakdown']['manual_discount']) == Decimal('150')
        assert Decimal(data['breakdown']['grand_total']) == Decimal('204')

    def test_group_discount_defaults_to_first_active_scheme(self, client, espresso, buy2get1):
        add(client, espresso.id, 3)

        data = client.post('/sales/cart/group-discount', json={'active': True}).get_json()

        assert data['cart']['group_scheme_id'] == buy2get1.id
        assert Decimal(data['breakdown']['group_discount']) == Decimal('150')
        assert data['breakdown']['scheme_name'] == 'Buy 2 Get 1 Free'

        data = client.post('/sales/cart/group-discount', json={'active': False}).get_json()
        assert Decimal(data['breakdown']['group_discount']) == 0

    def test_schemes(self, client, buy2get1):
        data = client.get('/sales/schemes').get_json()

        assert [s['name'] for s in data['schemes']] == ['Buy 2 Get 1 Free']

    def test_clear(self, client, espresso, coupon_save10):
        add(client, espresso.id)
        client.post('/sales/cart/coupon', json={'code': 'SAVE10'})

        data = client.post('/sales/cart/clear').get_json()

        assert data['cart']['lines'] == []
        assert data['cart']['coupon_code'] is None
        assert Decimal(data['breakdown']['grand_total']) == 0


class TestConfirmApi:
    """Tests for checkout endpoints."""

    def test_preview(self, client, espresso):
        add(client, espresso.id)

        data = client.get('/sales/confirm/preview').get_json()

        assert data['payment_methods'] == ['CASH', 'CARD', 'UPI']
        assert data['display']['grand_total'] == 'Rs.177.00'

    def test_preview_empty_cart(self, client, session):
        assert client.get('/sales/confirm/preview').status_code == 400

    def test_confirm(self, client, session, espresso, coupon_save10):
        """Test the full flow: add, discount, confirm."""
        espresso_id = espresso.id
        committed = checkouts('committed')
        upi_sales = REGISTRY.get_sample_value('pos_sale_total_amount_count', {'payment_method': 'UPI'}) or 0
        add(client, espresso_id, 2)
        client.post('/sales/cart/coupon', json={'code': 'SAVE10'})

        response = client.post('/sales/confirm', json={'payment_method': 'upi', 'expected_total': '324.00'})

        assert response.status_code == 201
        sale = response.get_json()['sale']
        assert sale['payment_method'] == 'UPI'
        assert Decimal(sale['total']) == Decimal('324')
        assert sale['discount_detail']['coupon']['code'] == 'SAVE10'
        assert checkouts('committed') == committed + 1
        assert REGISTRY.get_sample_value('pos_sale_total_amount_count', {'payment_method': 'UPI'}) == upi_sales + 1

        session.expire_all()
        assert session.get(Product, espresso_id).stock == 98
        assert session.query(Sale).count() == 1
        assert client.get('/sales/cart').get_json()['item_count'] == 0

    def test_insufficient_stock_returns_409_and_keeps_cart(self, client, session, croissant):
        croissant_id = croissant.id
        blocked = checkouts('insufficient_stock')
        add(client, croissant_id, 60)
        before = client.get('/sales/cart').get_json()['cart']

        response = client.post('/sales/confirm', json={'payment_method': 'CASH'})

        assert response.status_code == 409
        data = response.get_json()
        assert data['product_id'] == croissant_id
        assert data['required'] == 60
        assert data['available'] == 50
        assert client.get('/sales/cart').get_json()['cart'] == before
        assert checkouts('insufficient_stock') == blocked + 1

        session.expire_all()
        assert session.get(Product, croissant_id).stock == 50
        assert session.query(Sale).count() == 0

    def test_stale_total_is_refused(self, client, session, espresso):
        rejected = checkouts('rejected')
        add(client, espresso.id)

        response = client.post('/sales/confirm', json={'payment_method': 'CASH', 'expected_total': '100.00'})

        assert response.status_code == 400
        assert session.query(Sale).count() == 0
        assert checkouts('rejected') == rejected + 1

    def test_malformed_expected_total_is_counted_as_rejected(self, client, session, espresso):
        rejected = checkouts('rejected')
        add(client, espresso.id)

        response = client.post('/sales/confirm', json={'payment_method': 'CASH', 'expected_total': 'abc'})

        assert response.status_code == 400
        assert response.get_json()['field'] == 'expected_total'
        assert checkouts('rejected') == rejected + 1

    def test_empty_cart(self, client, session):
        rejected = checkouts('rejected')

        response = client.post('/sales/confirm', json={'payment_method': 'CASH'})

        assert response.status_code == 400
        assert checkouts('rejected') == rejected + 1

    def test_unknown_payment_method(self, client, espresso):
        add(client, espresso.id)

        response = client.post('/sales/confirm', json={'payment_method': 'CHEQUE'})

        assert response.status_code == 400
        assert client.get('/sales/cart').get_json()['item_count'] == 1

    def test_sale_detail_and_receipt(self, client, espresso):
        add(client, espresso.id)
        sale_id = client.post('/sales/confirm', json={'payment_method': 'CARD'}).get_json()['sale']['id']

        data = client.get(f'/sales/{sale_id}').get_json()
        assert data['sale']['lines'][0]['name'] == 'Espresso'

        response = client.get(f'/sales/{sale_id}/receipt.pdf')
        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')

    def test_unknown_sale(self, client, session):
        assert client.get('/sales/999').status_code == 404
        assert client.get('/sales/999/receipt.pdf').status_code == 404


class TestCatalogApi:

    def test_product_by_barcode(self, client, croissant):
        data = client.get('/catalog/barcode/2001').get_json()

        assert data['product']['name'] == 'Croissant'
        assert Decimal(data['product']['unit_price']) == Decimal('80')

    def test_product_detail_not_found(self, client, session):
        assert client.get('/catalog/products/4242').status_code == 404

    def test_pricing_recalculate(self, client, session):
        response = client.post('/catalog/pricing/recalculate',
                               json={'field': 'discount', 'mrp': '200', 'price': '', 'discount': '25'})

        assert response.get_json()['values']['price'] == '150.00'

    def test_pricing_recalculate_unknown_field(self, client, session):
        response = client.post('/catalog/pricing/recalculate', json={'field': 'cost'})

        assert response.status_code == 400


class TestOps:

    def test_metrics_endpoint(self, client, session):
        response = client.get('/metrics')

        assert response.status_code == 200
        assert b'pos_checkouts_total' in response.data
        assert b'pos_checkout_duration_seconds' in response.data

    def test_seed_demo_command(self, app, session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['seed-demo'])

        assert 'Loaded 6 demo rows' in result.output
        assert session.query(Product).count() == 4

        result = runner.invoke(args=['seed-demo'])
        assert 'nothing loaded' in result.output

    def test_create_coupon_command(self, app, session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['create-coupon', '--code', 'FLAT50', '--kind', 'flat', '--value', '50'])

        assert 'Coupon FLAT50 created' in result.output
        coupon = session.query(Coupon).filter_by(code='FLAT50').one()
        assert coupon.value == Decimal('50')


class TestEstimateApi:
    """Tests for the printable cart estimate."""

    def test_estimate_pdf_writes_nothing(self, client, session, espresso, coupon_save10):
        espresso_id = espresso.id
        add(client, espresso_id, 2)
        client.post('/sales/cart/coupon', json={'code': 'SAVE10'})
        before = client.get('/sales/cart').get_json()['cart']

        response = client.get('/sales/cart/estimate.pdf')

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')
        assert client.get('/sales/cart').get_json()['cart'] == before
        session.expire_all()
        assert session.query(Sale).count() == 0
        assert session.get(Product, espresso_id).stock == 100

    def test_estimate_of_empty_cart(self, client, session):
        assert client.get('/sales/cart/estimate.pdf').status_code == 400


class TestCsrf:
    """State-changing routes require the session's CSRF token."""

    @pytest.fixture
    def csrf_client(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, 'WTF_CSRF_ENABLED', True)
        return client

    def test_post_without_token_is_refused(self, csrf_client, espresso):
        response = add(csrf_client, espresso.id)

        assert response.status_code == 400
        assert response.get_json()['status'] == 'error'
        assert csrf_client.get('/sales/cart').get_json()['item_count'] == 0

    def test_cross_site_form_cannot_confirm(self, csrf_client, session):
        response = csrf_client.post('/sales/confirm', data={'payment_method': 'CASH'})

        assert response.status_code == 400
        assert session.query(Sale).count() == 0

    def test_post_with_token_header(self, csrf_client, espresso):
        espresso_id = espresso.id
        token = csrf_client.get('/sales/csrf-token').get_json()['csrf_token']

        response = csrf_client.post('/sales/cart/add', json={'product_id': espresso_id},
                                    headers={'X-CSRFToken': token})

        assert response.status_code == 200
        assert response.get_json()['item_count'] == 1

    def test_reads_need_no_token(self, csrf_client, session):
        assert csrf_client.get('/sales/cart').status_code == 200
