"""
Tests for lead to client conversion

Conversion succeeds at most once per lead, whatever the number of
concurrent callers, and never half-applies.
"""

import pytest
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from sqlalchemy import func
from sqlmodel import Session, select

from app.core.database import build_engine, init_db
from app.core.dependencies import load_auth_context
from app.core.errors import AlreadyConverted, ServerError
from app.core.permissions import RoleName
from app.models.client import Client, ClientStatus
from app.models.lead import Lead, LeadStatus
from app.models.note import ClientNote, LeadNote
from app.services import leads as lead_service
from app.services.leads import claim_conversion, convert_lead
from app.services.seed import seed_roles

from tests.utils import Factory, auth_headers


@pytest.fixture
def lead(factory, org):
    return factory.lead(
        org["company"],
        first_name="Grace",
        last_name="Hopper",
        email="grace@navy.mil",
        phone="555-0100",
        company_name="Navy",
        job_title="Rear Admiral",
        industry="Defense",
        website="https://navy.mil",
        address={"city": "Arlington"},
        tags=["vip"],
        currency="EUR",
        estimated_value=12000,
        status=LeadStatus.NEGOTIATION,
        probability=80,
        assigned_to=org["rep"].id,
    )


def test_claim_is_compare_and_set(db, lead):
    now = datetime.utcnow()
    assert claim_conversion(db, lead.id, now) is True
    assert claim_conversion(db, lead.id, now) is False
    db.rollback()

    db.expire_all()
    assert db.get(Lead, lead.id).converted_to_client is False


@pytest.mark.asyncio
async def test_convert_copies_lead_into_client(client, db, org, lead):
    response = await client.post(f"/api/leads/{lead.id}/convert", headers=auth_headers(org["rep"]))

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Lead converted to client successfully"

    converted = body["data"]["lead"]
    created = body["data"]["client"]
    assert converted["converted_to_client"] is True
    assert converted["converted_date"] is not None
    assert converted["client_id"] == created["id"]
    # Pipeline stage is left alone
    assert converted["status"] == LeadStatus.NEGOTIATION.value

    assert created["first_name"] == "Grace"
    assert created["email"] == "grace@navy.mil"
    assert created["company_name"] == "Navy"
    assert created["address"] == {"city": "Arlington"}
    assert created["tags"] == ["vip"]
    assert created["currency"] == "EUR"
    assert created["value"] == 12000
    assert created["status"] == ClientStatus.ACTIVE.value
    assert created["source"] == "lead_conversion"
    assert created["assigned_to"] == str(org["rep"].id)
    assert created["company_id"] == str(org["company"].id)
    assert created["converted_from_lead_id"] == str(lead.id)


@pytest.mark.asyncio
async def test_convert_copies_notes(client, db, org, lead):
    headers = auth_headers(org["rep"])
    await client.post(f"/api/leads/{lead.id}/notes", json={"content": "first call"}, headers=headers)
    await client.post(f"/api/leads/{lead.id}/notes", json={"content": "sent proposal"}, headers=headers)

    response = await client.post(f"/api/leads/{lead.id}/convert", headers=headers)
    client_id = response.json()["data"]["client"]["id"]

    detail = await client.get(f"/api/clients/{client_id}", headers=headers)
    assert [n["content"] for n in detail.json()["data"]["notes"]] == ["first call", "sent proposal"]


@pytest.mark.asyncio
async def test_second_conversion_conflicts(client, db, org, lead):
    headers = auth_headers(org["rep"])
    first = await client.post(f"/api/leads/{lead.id}/convert", headers=headers)
    second = await client.post(f"/api/leads/{lead.id}/convert", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["code"] == "ALREADY_CONVERTED"

    count = db.exec(select(func.count()).select_from(Client).where(Client.converted_from_lead_id == lead.id)).one()
    assert count == 1


@pytest.mark.asyncio
async def test_convert_needs_create_clients_and_update_leads(client, org, lead):
    response = await client.post(f"/api/leads/{lead.id}/convert", headers=auth_headers(org["viewer"]))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_converted_lead_cannot_be_edited(client, org, lead):
    headers = auth_headers(org["rep"])
    await client.post(f"/api/leads/{lead.id}/convert", headers=headers)

    response = await client.put(f"/api/leads/{lead.id}", json={"first_name": "Changed"}, headers=headers)
    assert response.status_code == 409
    assert response.json()["message"] == "Converted leads cannot be modified"


@pytest.mark.asyncio
async def test_assignee_from_another_company_is_dropped(client, db, factory, org):
    lead = factory.lead(org["company"])
    other = factory.user(factory.company(org["tenant"]), RoleName.SALES_REP)
    lead.assigned_to = other.id
    db.add(lead)
    db.commit()

    response = await client.post(f"/api/leads/{lead.id}/convert", headers=auth_headers(org["rep"]))
    assert response.json()["data"]["client"]["assigned_to"] is None


def test_failed_conversion_rolls_back_the_claim(db, org, lead, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(lead_service, "build_client_from_lead", broken)
    context = load_auth_context(db, org["rep"].id, None, "localhost")

    with pytest.raises(ServerError):
        convert_lead(db, lead.id, context)

    db.expire_all()
    stored = db.get(Lead, lead.id)
    assert stored.converted_to_client is False
    assert stored.client_id is None
    assert db.exec(select(func.count()).select_from(Client)).one() == 0


def test_concurrent_conversions_create_one_client(tmp_path):
    """Many callers racing on one lead: exactly one wins"""
    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    init_db(engine)

    with Session(engine) as session:
        seed_roles(session)
        factory = Factory(session)
        company = factory.company(factory.tenant("racers"))
        user_id = factory.user(company, RoleName.SALES_REP).id
        lead = factory.lead(company)
        lead_id = lead.id
        session.add(LeadNote(lead_id=lead_id, content="hello", created_by=user_id))
        session.commit()

    callers = 8
    barrier = threading.Barrier(callers)

    def attempt():
        barrier.wait()
        with Session(engine) as session:
            context = load_auth_context(session, user_id, None, "localhost")
            try:
                convert_lead(session, lead_id, context)
                return "converted"
            except AlreadyConverted:
                return "rejected"

    with ThreadPoolExecutor(max_workers=callers) as pool:
        results = list(pool.map(lambda _: attempt(), range(callers)))

    assert results.count("converted") == 1
    assert results.count("rejected") == callers - 1

    with Session(engine) as session:
        clients = session.exec(select(Client).where(Client.converted_from_lead_id == lead_id)).all()
        assert len(clients) == 1
        assert session.get(Lead, lead_id).client_id == clients[0].id
        notes = session.exec(select(ClientNote).where(ClientNote.client_id == clients[0].id)).all()
        assert len(notes) == 1

    engine.dispose()
