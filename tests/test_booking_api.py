"""HTTP surface of the booking flow: initiation, gateway callbacks and reads."""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from src.bookings.schemas import BookingStatus
from src.config import settings
from src.exceptions import GatewayError
from tests.conftest import GATEWAY_PAGE_URL, FakeGateway, sign_ipn

API = settings.API_PREFIX

ALICE = {
    'fullName': 'Alice',
    'phone': '01712345678',
    'tourName': 'Sundarbans',
    'totalPrice': 5000,
}


def _initiate(client: TestClient, **overrides) -> str:
    response = client.post(f'{API}/booking/initiate', json={**ALICE, **overrides})
    assert response.status_code == 200
    return response.json()['transactionId']


def _status_of(client: TestClient, transaction_id: str) -> str:
    response = client.get(f'{API}/booking/details', params={'transactionId': transaction_id})
    assert response.status_code == 200
    return response.json()['status']


def _redirect_query(response) -> dict:
    assert response.status_code == 303
    location = response.headers['location']
    assert location.startswith(f'{settings.FRONTEND_URL}/booked')
    return {key: values[0] for key, values in parse_qs(urlparse(location).query).items()}


class TestInitiate:
    def test_initiate_returns_payment_url(self, client: TestClient, gateway: FakeGateway):
        response = client.post(f'{API}/booking/initiate', json=ALICE)

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'success'
        assert body['paymentUrl'] == GATEWAY_PAGE_URL
        assert gateway.initiated[0].total_amount == 5000
        assert _status_of(client, body['transactionId']) == 'pending'

    def test_missing_fields_rejected_with_400(self, client: TestClient, gateway: FakeGateway):
        response = client.post(f'{API}/booking/initiate', json={'fullName': 'Alice'})

        assert response.status_code == 400
        assert response.json()['status'] == 'failure'
        assert 'Missing required fields' in response.json()['message']
        assert gateway.initiated == []

    def test_malformed_price_rejected_with_400(self, client: TestClient):
        response = client.post(f'{API}/booking/initiate', json={**ALICE, 'totalPrice': 'lots'})

        assert response.status_code == 400
        assert response.json()['status'] == 'error'

    def test_negative_price_rejected(self, client: TestClient):
        response = client.post(f'{API}/booking/initiate', json={**ALICE, 'totalPrice': -10})

        assert response.status_code == 400

    def test_sub_cent_price_rejected_before_gateway(self, client: TestClient, gateway: FakeGateway):
        response = client.post(f'{API}/booking/initiate', json={**ALICE, 'totalPrice': '5000.005'})

        assert response.status_code == 400
        assert 'decimal places' in response.json()['message']
        assert gateway.initiated == []

    def test_gateway_refusal(self, client: TestClient, gateway: FakeGateway):
        gateway.payment_url = None

        response = client.post(f'{API}/booking/initiate', json=ALICE)

        assert response.status_code == 400
        assert response.json() == {'status': 'failure', 'message': 'Payment gateway error'}

    def test_gateway_timeout(self, client: TestClient, gateway: FakeGateway):
        gateway.initiate_error = GatewayError('Payment gateway timed out')

        response = client.post(f'{API}/booking/initiate', json=ALICE)

        assert response.status_code == 500
        assert response.json()['status'] == 'error'
        # The pending booking is kept for later reconciliation
        listing = client.get(f'{API}/booking').json()['data']
        assert [b['status'] for b in listing] == ['pending']


class TestSuccessCallback:
    def test_valid_payment_redirects_to_success(self, client: TestClient):
        transaction_id = _initiate(client)

        response = client.post(
            f'{API}/booking/success/{transaction_id}',
            data={'val_id': 'VAL123', 'tran_id': transaction_id},
            follow_redirects=False,
        )

        assert _redirect_query(response) == {'status': 'success', 'transactionId': transaction_id}
        assert _status_of(client, transaction_id) == 'confirmed'

    def test_invalid_payment_redirects_to_failure(self, client: TestClient, gateway: FakeGateway):
        transaction_id = _initiate(client)
        gateway.validation_status = 'INVALID_TRANSACTION'

        response = client.post(
            f'{API}/booking/success/{transaction_id}',
            data={'val_id': 'VAL123'},
            follow_redirects=False,
        )

        assert _redirect_query(response)['status'] == 'failure'
        assert _status_of(client, transaction_id) == 'failed'

    def test_tran_id_in_form_body(self, client: TestClient):
        transaction_id = _initiate(client)

        response = client.post(
            f'{API}/booking/success',
            data={'val_id': 'VAL123', 'tran_id': transaction_id},
            follow_redirects=False,
        )

        assert _redirect_query(response)['status'] == 'success'

    def test_payment_prefix_alias_is_served(self, client: TestClient):
        transaction_id = _initiate(client)

        response = client.post(
            f'{API}/payment/success/{transaction_id}',
            data={'val_id': 'VAL123'},
            follow_redirects=False,
        )

        assert _redirect_query(response)['status'] == 'success'

    def test_unknown_transaction_still_redirects(self, client: TestClient):
        response = client.post(
            f'{API}/booking/success/TRAN_NOPE',
            data={'val_id': 'VAL123'},
            follow_redirects=False,
        )

        assert _redirect_query(response) == {'status': 'failure', 'transactionId': 'TRAN_NOPE'}

    def test_missing_val_id_redirects_to_failure_without_transition(self, client: TestClient):
        transaction_id = _initiate(client)

        response = client.post(f'{API}/booking/success/{transaction_id}', follow_redirects=False)

        assert _redirect_query(response)['status'] == 'failure'
        assert _status_of(client, transaction_id) == 'pending'


class TestFailAndCancelCallbacks:
    def test_fail_redirects_and_marks_failed(self, client: TestClient):
        transaction_id = _initiate(client)

        response = client.post(f'{API}/booking/fail/{transaction_id}', follow_redirects=False)

        assert _redirect_query(response)['status'] == 'failure'
        assert _status_of(client, transaction_id) == 'failed'

    def test_cancel_twice(self, client: TestClient):
        transaction_id = _initiate(client)

        first = client.post(f'{API}/booking/cancel/{transaction_id}', follow_redirects=False)
        second = client.post(f'{API}/booking/cancel/{transaction_id}', follow_redirects=False)

        assert _redirect_query(first)['status'] == 'canceled'
        assert _redirect_query(second)['status'] == 'canceled'
        assert _status_of(client, transaction_id) == 'cancelled'

    def test_fail_for_unknown_transaction_is_acknowledged(self, client: TestClient):
        response = client.post(f'{API}/booking/fail', data={'tran_id': 'TRAN_NOPE'}, follow_redirects=False)

        assert _redirect_query(response)['status'] == 'failure'

    def test_cancel_after_confirmation_changes_nothing(self, client: TestClient):
        transaction_id = _initiate(client)
        client.post(f'{API}/booking/success/{transaction_id}', data={'val_id': 'VAL1'}, follow_redirects=False)

        client.post(f'{API}/booking/cancel/{transaction_id}', follow_redirects=False)

        assert _status_of(client, transaction_id) == 'confirmed'


class TestIpn:
    def test_ipn_confirms_and_returns_200(self, client: TestClient, gateway: FakeGateway):
        transaction_id = _initiate(client)

        response = client.post(
            f'{API}/booking/ipn',
            data={'tran_id': transaction_id, 'val_id': 'VAL7', 'status': 'VALID', 'amount': '5000.00'},
        )

        assert response.status_code == 200
        assert response.json() == {'received': True}
        assert gateway.validated == ['VAL7']
        assert _status_of(client, transaction_id) == 'confirmed'

    def test_signed_failure_ipn_fails_booking(self, client: TestClient):
        transaction_id = _initiate(client)

        response = client.post(
            f'{API}/booking/ipn/{transaction_id}',
            data=sign_ipn({'tran_id': transaction_id, 'status': 'FAILED', 'amount': '5000.00'}),
        )

        assert response.status_code == 200
        assert _status_of(client, transaction_id) == 'failed'

    def test_unsigned_failure_ipn_cannot_block_payment(self, client: TestClient, gateway: FakeGateway):
        transaction_id = _initiate(client)

        response = client.post(f'{API}/booking/ipn', data={'tran_id': transaction_id, 'status': 'FAILED'})

        assert response.status_code == 200
        assert _status_of(client, transaction_id) == 'pending'

        redirect = client.post(
            f'{API}/booking/success/{transaction_id}', data={'val_id': 'VAL123'}, follow_redirects=False
        )

        assert _redirect_query(redirect)['status'] == 'success'
        assert gateway.validated == ['VAL123']
        assert _status_of(client, transaction_id) == 'confirmed'

    def test_ipn_for_unknown_transaction_returns_200(self, client: TestClient):
        response = client.post(f'{API}/booking/ipn/TRAN_NOPE', data={'status': 'VALID', 'val_id': 'VAL7'})

        assert response.status_code == 200

    def test_ipn_without_any_data_returns_200(self, client: TestClient):
        response = client.post(f'{API}/booking/ipn')

        assert response.status_code == 200

    def test_ipn_gateway_error_returns_200_and_fails_booking(self, client: TestClient, gateway: FakeGateway):
        transaction_id = _initiate(client)
        gateway.validate_error = GatewayError('Payment gateway unreachable')

        response = client.post(
            f'{API}/booking/ipn/{transaction_id}', data={'val_id': 'VAL7', 'status': 'VALID'}
        )

        assert response.status_code == 200
        assert _status_of(client, transaction_id) == 'failed'


class TestReads:
    def test_get_booking_by_id(self, client: TestClient):
        transaction_id = _initiate(client, userId='user-1', maxGroupSize=3, babyCount=1, date='2026-11-02')
        booking_id = client.get(
            f'{API}/booking/details', params={'transactionId': transaction_id}
        ).json()['id']

        response = client.get(f'{API}/booking/{booking_id}')

        assert response.status_code == 200
        data = response.json()['data']
        assert response.json()['success'] is True
        assert data['transactionId'] == transaction_id
        assert data['userId'] == 'user-1'
        assert data['fullName'] == 'Alice'
        assert data['maxGroupSize'] == 3
        assert data['babyCount'] == 1
        assert data['date'] == '2026-11-02'
        assert data['totalPrice'] == 5000.0

    def test_missing_booking_is_404(self, client: TestClient):
        assert client.get(f'{API}/booking/nope').status_code == 404
        assert client.get(f'{API}/booking/details', params={'transactionId': 'TRAN_NOPE'}).status_code == 404

    def test_empty_listings_are_404(self, client: TestClient):
        assert client.get(f'{API}/booking').status_code == 404
        assert client.get(f'{API}/booking/user/user-1').status_code == 404

    def test_user_bookings(self, client: TestClient):
        _initiate(client, userId='user-1')
        _initiate(client, userId='user-1')
        _initiate(client, userId='user-2')

        response = client.get(f'{API}/booking/user/user-1')

        assert response.status_code == 200
        assert len(response.json()['data']) == 2

    def test_invoice(self, client: TestClient):
        transaction_id = _initiate(client, date='2026-11-02')
        client.post(f'{API}/booking/success/{transaction_id}', data={'val_id': 'VAL1'}, follow_redirects=False)

        response = client.get(f'{API}/invoice/{transaction_id}')

        assert response.status_code == 200
        assert response.json() == {
            'transactionId': transaction_id,
            'fullName': 'Alice',
            'tourName': 'Sundarbans',
            'totalPrice': 5000.0,
            'date': '2026-11-02',
            'paymentStatus': 'confirmed',
        }

    def test_invoice_missing(self, client: TestClient):
        response = client.get(f'{API}/invoice/TRAN_NOPE')

        assert response.status_code == 404
        assert response.json()['message'] == 'Invoice not found'


class TestDelete:
    def _booking_id(self, client: TestClient, transaction_id: str) -> str:
        return client.get(f'{API}/booking/details', params={'transactionId': transaction_id}).json()['id']

    def test_confirmed_booking_today_can_be_cancelled(self, client: TestClient):
        today = datetime.now(timezone.utc).date().isoformat()
        transaction_id = _initiate(client, date=today)
        client.post(f'{API}/booking/success/{transaction_id}', data={'val_id': 'VAL1'}, follow_redirects=False)
        booking_id = self._booking_id(client, transaction_id)

        response = client.delete(f'{API}/booking/{booking_id}')

        assert response.status_code == 200
        assert response.json()['success'] is True
        assert client.get(f'{API}/booking/{booking_id}').status_code == 404
        assert client.delete(f'{API}/booking/{booking_id}').status_code == 404

    def test_pending_booking_cannot_be_cancelled(self, client: TestClient):
        transaction_id = _initiate(client)
        booking_id = self._booking_id(client, transaction_id)

        response = client.delete(f'{API}/booking/{booking_id}')

        assert response.status_code == 400
        assert _status_of(client, transaction_id) == BookingStatus.PENDING.value

    def test_old_confirmed_booking_cannot_be_cancelled(self, client: TestClient):
        transaction_id = _initiate(client, date='2020-01-01')
        client.post(f'{API}/booking/success/{transaction_id}', data={'val_id': 'VAL1'}, follow_redirects=False)
        booking_id = self._booking_id(client, transaction_id)

        response = client.delete(f'{API}/booking/{booking_id}')

        assert response.status_code == 400
        assert 'Cancellation window' in response.json()['message']

    def test_missing_booking(self, client: TestClient):
        assert client.delete(f'{API}/booking/nope').status_code == 404


@pytest.mark.parametrize('path', ['/', '/health'])
def test_service_endpoints(client: TestClient, path: str):
    assert client.get(path).status_code == 200
