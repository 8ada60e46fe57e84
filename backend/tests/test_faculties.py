from datetime import datetime, timezone

import pytest

from academy import models, repositories
from academy.config import settings
from academy.models import UserRole


@pytest.fixture
def faculties(session):
    rows = [
        models.Faculty(name="Faculty of Science", city="Zagreb"),
        models.Faculty(name="Faculty of Arts", city="Split"),
        models.Faculty(name="School of Medicine", city="Rijeka"),
    ]
    for row in rows:
        session.add(row)
    session.commit()
    return [row.id for row in rows]


def test_list_defaults_to_id_desc(client, make_user, faculties):
    _, headers = make_user()
    r = client.get('/faculties', headers=headers)
    assert r.status_code == 200
    assert [f['id'] for f in r.json()['data']] == sorted(faculties, reverse=True)


def test_search_order_and_paginate(client, make_user, faculties):
    _, headers = make_user()
    found = client.get('/faculties', params={'search': 'Faculty', 'order_by': 'name', 'order_type': 'asc'},
                       headers=headers).json()['data']
    assert [f['name'] for f in found] == ['Faculty of Arts', 'Faculty of Science']

    page = client.get('/faculties', params={'order_by': 'city', 'order_type': 'asc', 'skip': 1, 'take': 1},
                      headers=headers).json()['data']
    assert [f['city'] for f in page] == ['Split']


def test_invalid_ordering_is_bad_request(client, make_user, faculties):
    _, headers = make_user()
    r = client.get('/faculties', params={'order_by': 'password'}, headers=headers)
    assert r.status_code == 400
    assert r.json()['status'] == 400
    assert client.get('/faculties', params={'order_type': 'sideways'}, headers=headers).status_code == 400
    assert client.get('/faculties', params={'take': 0}, headers=headers).status_code == 400


def test_get_single_faculty(client, make_user, faculties):
    _, headers = make_user()
    r = client.get(f'/faculties/{faculties[0]}', headers=headers)
    assert r.json()['data']['city'] == 'Zagreb'
    missing = client.get('/faculties/999', headers=headers)
    assert missing.status_code == 404
    assert missing.json()['message'] == "Faculty doesn't exist."


def test_only_admin_mutates_faculties(client, make_user, faculties):
    _, student = make_user()
    assert client.post('/faculties/create', json={'name': 'Law'}, headers=student).status_code == 401
    assert client.post(f'/faculties/{faculties[0]}/update', json={'city': 'Osijek'}, headers=student).status_code == 401
    assert client.delete(f'/faculties/{faculties[0]}/delete', headers=student).status_code == 401

    _, admin = make_user(role=UserRole.ADMIN, year="Year 4")
    created = client.post('/faculties/create', json={'name': 'Faculty of Law', 'city': 'Zadar'}, headers=admin)
    assert created.status_code == 201
    updated = client.post(f'/faculties/{faculties[0]}/update', json={'city': 'Osijek'}, headers=admin)
    assert updated.json()['data']['city'] == 'Osijek'
    assert updated.json()['data']['name'] == 'Faculty of Science'


def test_deleting_faculty_detaches_modules(client, make_user, faculties, session, year_ids):
    module = models.Module(name="Anatomy", year_id=year_ids["Year 1"], faculty_id=faculties[2])
    session.add(module)
    session.commit()
    module_id = module.id
    _, admin = make_user(role=UserRole.ADMIN)
    r = client.delete(f'/faculties/{faculties[2]}/delete', headers=admin)
    assert r.status_code == 200
    assert r.json()['data']['name'] == 'School of Medicine'
    session.expire_all()
    assert session.get(models.Faculty, faculties[2]) is None
    assert session.get(models.Module, module_id).faculty_id is None


def test_search_treats_wildcards_literally(client, make_user, faculties):
    _, headers = make_user()
    for term in ('%', '_', 'of%'):
        r = client.get('/faculties', params={'search': term}, headers=headers)
        assert r.status_code == 200
        assert r.json()['data'] == []


def test_skip_without_take_uses_default_page_size(client, make_user, faculties, monkeypatch):
    monkeypatch.setattr(settings, 'DEFAULT_PAGE_SIZE', 1)
    _, headers = make_user()
    page = client.get('/faculties', params={'skip': 1}, headers=headers).json()['data']
    assert [f['id'] for f in page] == [sorted(faculties, reverse=True)[1]]
    everything = client.get('/faculties', headers=headers).json()['data']
    assert len(everything) == 3


def test_update_refreshes_updated_at_only(client, make_user, faculties, monkeypatch):
    _, admin = make_user(role=UserRole.ADMIN)
    before = client.get(f'/faculties/{faculties[1]}', headers=admin).json()['data']
    monkeypatch.setattr(repositories, 'utcnow', lambda: datetime(2030, 1, 1, tzinfo=timezone.utc))
    after = client.post(f'/faculties/{faculties[1]}/update', json={'city': 'Zadar'}, headers=admin).json()['data']
    assert after['created_at'] == before['created_at']
    assert after['updated_at'] != before['updated_at']
    assert after['updated_at'].startswith('2030-01-01')
