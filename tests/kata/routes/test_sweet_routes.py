import json

import pytest

from kata.models.sweet import MAX_STOCK_QUANTITY

from conftest import bearer, register

DARK_CHOCOLATE = {'name': 'Dark Chocolate', 'category': 'chocolate', 'price': 5.99, 'quantity': 50}


def _create(client, token: str, payload: dict | None = None) -> dict:
    response = client.post('/sweets', json=payload or DARK_CHOCOLATE, headers=bearer(token))
    assert response.status_code == 201, response.text
    return response.json()['data']


def test_purchase_scenario(client) -> None:
    admin_token = register(client, 'a@x.com', role='admin')
    created = _create(client, admin_token)
    assert created['quantity'] == 50

    user_token = register(client, 'b@x.com')

    too_many = client.post(f"/sweets/{created['id']}/purchase", json={'quantity': 60}, headers=bearer(user_token))
    assert too_many.status_code == 400
    assert too_many.json() == {'success': False, 'message': 'Insufficient stock'}

    purchased = client.post(f"/sweets/{created['id']}/purchase", json={'quantity': 10}, headers=bearer(user_token))
    assert purchased.status_code == 200
    assert purchased.json()['message'] == 'Purchase successful'
    assert purchased.json()['data']['quantity'] == 40


def test_create_returns_record_with_server_fields(client, admin_token) -> None:
    payload = {**DARK_CHOCOLATE, 'description': 'Bitter', 'imageUrl': '/uploads/dark.png'}

    created = _create(client, admin_token, payload)
    fetched = client.get(f"/sweets/{created['id']}", headers=bearer(admin_token)).json()['data']

    for key, value in payload.items():
        assert fetched[key] == value
    assert {'id', 'createdAt', 'updatedAt'} <= set(fetched)


def test_create_rejects_invalid_payload(client, admin_token) -> None:
    response = client.post(
        '/sweets',
        json={'name': 'A', 'category': 'invalid', 'price': -5, 'quantity': -10},
        headers=bearer(admin_token),
    )

    body = response.json()
    assert response.status_code == 400
    assert {error['field'] for error in body['errors']} == {'name', 'category', 'price', 'quantity'}


@pytest.mark.parametrize(
    ('method', 'path', 'payload'),
    [
        ('post', '/sweets', DARK_CHOCOLATE),
        ('put', '/sweets/{id}', {'price': 1.0}),
        ('delete', '/sweets/{id}', None),
        ('post', '/sweets/{id}/restock', {'quantity': 5}),
    ],
)
def test_mutations_require_admin(client, admin_token, user_token, method: str, path: str, payload) -> None:
    created = _create(client, admin_token)
    url = path.format(id=created['id'])
    kwargs = {'json': payload} if payload is not None else {}

    forbidden = client.request(method.upper(), url, headers=bearer(user_token), **kwargs)
    unauthenticated = client.request(method.upper(), url, **kwargs)

    assert forbidden.status_code == 403
    assert forbidden.json() == {'success': False, 'message': 'Admin access required'}
    assert unauthenticated.status_code == 401


@pytest.mark.parametrize('path', ['/sweets', '/sweets/search', '/sweets/1'])
def test_reads_require_token(client, path: str) -> None:
    assert client.get(path).status_code == 401


def test_list_returns_newest_first_with_count(client, admin_token, user_token) -> None:
    _create(client, admin_token, {**DARK_CHOCOLATE, 'name': 'First'})
    _create(client, admin_token, {**DARK_CHOCOLATE, 'name': 'Second'})

    body = client.get('/sweets', headers=bearer(user_token)).json()

    assert body['count'] == 2
    assert [sweet['name'] for sweet in body['data']] == ['Second', 'First']


def test_get_unknown_sweet_returns_404(client, user_token) -> None:
    response = client.get('/sweets/999', headers=bearer(user_token))

    assert response.status_code == 404
    assert response.json() == {'success': False, 'message': 'Sweet not found'}


def test_get_with_malformed_id_returns_400(client, user_token) -> None:
    assert client.get('/sweets/not-an-id', headers=bearer(user_token)).status_code == 400


def test_search_is_conjunctive(client, admin_token, user_token) -> None:
    _create(client, admin_token, {'name': 'Dark Chocolate', 'category': 'chocolate', 'price': 5.99, 'quantity': 5})
    _create(client, admin_token, {'name': 'Milk Chocolate', 'category': 'chocolate', 'price': 4.5, 'quantity': 5})
    _create(client, admin_token, {'name': 'Cheap Candy', 'category': 'candy', 'price': 1.0, 'quantity': 5})

    response = client.get(
        '/sweets/search',
        params={'category': 'chocolate', 'maxPrice': 5},
        headers=bearer(user_token),
    )

    body = response.json()
    assert response.status_code == 200
    assert body['count'] == 1
    assert body['data'][0]['name'] == 'Milk Chocolate'


def test_search_by_name_and_min_price(client, admin_token, user_token) -> None:
    _create(client, admin_token, {'name': 'Dark Chocolate', 'category': 'chocolate', 'price': 5.99, 'quantity': 5})
    _create(client, admin_token, {'name': 'Chocolate Cake', 'category': 'cake', 'price': 20, 'quantity': 5})

    response = client.get(
        '/sweets/search',
        params={'name': 'chocolate', 'minPrice': 5.99},
        headers=bearer(user_token),
    )

    assert {sweet['name'] for sweet in response.json()['data']} == {'Dark Chocolate', 'Chocolate Cake'}


def test_search_rejects_unknown_category(client, user_token) -> None:
    response = client.get('/sweets/search', params={'category': 'vegetable'}, headers=bearer(user_token))

    assert response.status_code == 400


def test_update_changes_only_supplied_fields(client, admin_token) -> None:
    created = _create(client, admin_token)

    response = client.put(f"/sweets/{created['id']}", json={'quantity': 75}, headers=bearer(admin_token))

    data = response.json()['data']
    assert response.status_code == 200
    assert data['quantity'] == 75
    assert data['name'] == 'Dark Chocolate'
    assert data['price'] == 5.99


def test_update_rejects_invalid_fields(client, admin_token) -> None:
    created = _create(client, admin_token)

    response = client.put(f"/sweets/{created['id']}", json={'price': -1}, headers=bearer(admin_token))

    assert response.status_code == 400


def test_update_unknown_sweet_returns_404(client, admin_token) -> None:
    response = client.put('/sweets/999', json={'price': 1.0}, headers=bearer(admin_token))

    assert response.status_code == 404


def test_delete_removes_sweet(client, admin_token) -> None:
    created = _create(client, admin_token)

    response = client.delete(f"/sweets/{created['id']}", headers=bearer(admin_token))

    assert response.status_code == 200
    assert response.json() == {'success': True, 'message': 'Sweet deleted successfully'}
    assert client.get(f"/sweets/{created['id']}", headers=bearer(admin_token)).status_code == 404


def test_purchase_without_body_buys_one(client, admin_token, user_token) -> None:
    created = _create(client, admin_token)

    response = client.post(f"/sweets/{created['id']}/purchase", headers=bearer(user_token))

    assert response.status_code == 200
    assert response.json()['data']['quantity'] == 49


def test_purchase_unknown_sweet_returns_404(client, user_token) -> None:
    response = client.post('/sweets/999/purchase', json={'quantity': 1}, headers=bearer(user_token))

    assert response.status_code == 404


def test_restock_increments_quantity(client, admin_token) -> None:
    created = _create(client, admin_token)

    response = client.post(f"/sweets/{created['id']}/restock", json={'quantity': 25}, headers=bearer(admin_token))

    assert response.status_code == 200
    assert response.json()['message'] == 'Restock successful'
    assert response.json()['data']['quantity'] == 75


@pytest.mark.parametrize('quantity', [0, -5])
def test_restock_rejects_non_positive_quantity(client, admin_token, quantity: int) -> None:
    created = _create(client, admin_token)

    response = client.post(
        f"/sweets/{created['id']}/restock",
        json={'quantity': quantity},
        headers=bearer(admin_token),
    )

    assert response.status_code == 400
    assert response.json()['message'] == 'Quantity must be a positive integer'
    assert client.get(f"/sweets/{created['id']}", headers=bearer(admin_token)).json()['data']['quantity'] == 50


def test_restock_requires_quantity(client, admin_token) -> None:
    created = _create(client, admin_token)

    response = client.post(f"/sweets/{created['id']}/restock", json={}, headers=bearer(admin_token))

    assert response.status_code == 400


def _post_raw_json(client, url: str, raw_body: str, token: str, method: str = 'POST'):
    # Python's json module reads NaN/Infinity tokens, so send them verbatim.
    return client.request(
        method,
        url,
        content=raw_body,
        headers={**bearer(token), 'Content-Type': 'application/json'},
    )


@pytest.mark.parametrize('price', ['NaN', 'Infinity', '-Infinity'])
def test_create_rejects_non_finite_price(client, admin_token, price: str) -> None:
    raw_body = '{"name": "Dark Chocolate", "category": "chocolate", "price": %s, "quantity": 5}' % price

    response = _post_raw_json(client, '/sweets', raw_body, admin_token)

    assert response.status_code == 400
    assert response.json()['errors'][0]['field'] == 'price'
    listing = client.get('/sweets', headers=bearer(admin_token))
    assert listing.status_code == 200
    assert listing.json()['count'] == 0


@pytest.mark.parametrize('price', ['NaN', 'Infinity'])
def test_update_rejects_non_finite_price(client, admin_token, price: str) -> None:
    created = _create(client, admin_token)

    response = _post_raw_json(client, f"/sweets/{created['id']}", '{"price": %s}' % price, admin_token, method='PUT')

    assert response.status_code == 400
    fetched = client.get(f"/sweets/{created['id']}", headers=bearer(admin_token))
    assert fetched.status_code == 200
    assert fetched.json()['data']['price'] == 5.99


@pytest.mark.parametrize('quantity', [MAX_STOCK_QUANTITY + 1, 10**20])
def test_create_rejects_quantity_above_ceiling(client, admin_token, quantity: int) -> None:
    response = client.post('/sweets', json={**DARK_CHOCOLATE, 'quantity': quantity}, headers=bearer(admin_token))

    assert response.status_code == 400
    assert client.get('/sweets', headers=bearer(admin_token)).json()['count'] == 0


def test_create_accepts_quantity_at_ceiling(client, admin_token) -> None:
    created = _create(client, admin_token, {**DARK_CHOCOLATE, 'quantity': MAX_STOCK_QUANTITY})

    assert created['quantity'] == MAX_STOCK_QUANTITY


@pytest.mark.parametrize(
    ('method', 'path', 'payload'),
    [
        ('PUT', '/sweets/{id}', {'quantity': 10**20}),
        ('POST', '/sweets/{id}/purchase', {'quantity': 10**20}),
        ('POST', '/sweets/{id}/restock', {'quantity': 10**20}),
        ('POST', '/sweets/{id}/restock', {'quantity': MAX_STOCK_QUANTITY + 1}),
    ],
)
def test_oversized_quantities_are_rejected_without_changing_stock(
    client, admin_token, method: str, path: str, payload: dict
) -> None:
    created = _create(client, admin_token)

    response = client.request(
        method,
        path.format(id=created['id']),
        content=json.dumps(payload),
        headers={**bearer(admin_token), 'Content-Type': 'application/json'},
    )

    assert response.status_code == 400
    fetched = client.get(f"/sweets/{created['id']}", headers=bearer(admin_token))
    assert fetched.status_code == 200
    assert fetched.json()['data']['quantity'] == 50


def test_restock_past_ceiling_is_rejected(client, admin_token) -> None:
    created = _create(client, admin_token, {**DARK_CHOCOLATE, 'quantity': MAX_STOCK_QUANTITY - 1})

    response = client.post(f"/sweets/{created['id']}/restock", json={'quantity': 2}, headers=bearer(admin_token))

    assert response.status_code == 400
    assert response.json()['message'] == f'Stock cannot exceed {MAX_STOCK_QUANTITY}'
    fetched = client.get(f"/sweets/{created['id']}", headers=bearer(admin_token))
    assert fetched.json()['data']['quantity'] == MAX_STOCK_QUANTITY - 1
