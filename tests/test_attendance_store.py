from __future__ import annotations

import asyncio
import uuid

from app.core.errors import ErrorKind


def test_end_to_end_customer_attendant_attendance(context):
    async def scenario():
        customer = (
            await context.customers.create({"name": "Acme", "email": "a@acme.com"})
        ).unwrap()
        attendant = (
            await context.attendants.create(
                {
                    "name": "Bob",
                    "email": "bob@x.com",
                    "role": "attendant",
                    "password": "secret1",
                }
            )
        ).unwrap()
        created = await context.attendances.create(
            {
                "customer_id": customer.id,
                "attendant_id": attendant.id,
                "title": "Printer jam",
                "status": "open",
                "priority": "high",
            }
        )
        assert created.ok
        return await context.attendances.fetch_all()

    result = asyncio.run(scenario())

    assert result.ok
    [row] = context.attendances.state.items
    assert row.status == "open"
    assert row.priority == "high"
    assert row.customer.name == "Acme"
    assert row.attendant.name == "Bob"


def test_created_attendance_carries_expanded_relations(context, db):
    customer = db.seed("customers", name="Acme")
    attendant = db.seed("users", email="bob@x.com", name="Bob", role="attendant")

    result = asyncio.run(
        context.attendances.create(
            {
                "customer_id": customer["id"],
                "attendant_id": attendant["id"],
                "title": "No dial tone",
            }
        )
    )

    assert result.value.status == "open"
    assert result.value.priority == "medium"
    assert result.value.customer.name == "Acme"
    assert context.attendances.state.items[-1].attendant.name == "Bob"


def test_legacy_status_names_are_normalized(context, db):
    customer = db.seed("customers", name="Acme")
    attendant = db.seed("users", email="bob@x.com", name="Bob", role="attendant")
    db.seed(
        "attendances",
        customer_id=customer["id"],
        attendant_id=attendant["id"],
        title="Old ticket",
        status="completed",
        priority="low",
    )

    async def scenario():
        created = await context.attendances.create(
            {
                "customer_id": customer["id"],
                "attendant_id": attendant["id"],
                "title": "New ticket",
                "status": "pending",
            }
        )
        await context.attendances.fetch_all()
        return created

    created = asyncio.run(scenario())

    assert db.tables["attendances"][-1]["status"] == "open"
    assert created.value.status == "open"
    statuses = {a.title: a.status for a in context.attendances.state.items}
    assert statuses == {"Old ticket": "resolved", "New ticket": "open"}


def test_unknown_customer_is_rejected_by_foreign_key(context, db):
    attendant = db.seed("users", email="bob@x.com", name="Bob", role="attendant")

    result = asyncio.run(
        context.attendances.create(
            {
                "customer_id": str(uuid.uuid4()),
                "attendant_id": attendant["id"],
                "title": "Orphan",
            }
        )
    )

    assert result.error.kind is ErrorKind.VALIDATION
    assert context.attendances.state.items == ()


def test_missing_required_fields_fail_validation(context, db):
    result = asyncio.run(context.attendances.create({"title": "No links"}))

    assert result.error.kind is ErrorKind.VALIDATION
    assert {"customer_id", "attendant_id"} <= set(result.error.field_errors)
    assert db.count("attendances", "insert") == 0


def test_update_status_keeps_other_fields(context, db):
    customer = db.seed("customers", name="Acme")
    attendant = db.seed("users", email="bob@x.com", name="Bob", role="attendant")
    row = db.seed(
        "attendances",
        customer_id=customer["id"],
        attendant_id=attendant["id"],
        title="Printer jam",
        description="Tray 2",
        status="open",
        priority="high",
    )

    async def scenario():
        await context.attendances.fetch_all()
        return await context.attendances.update(
            uuid.UUID(row["id"]), {"status": "resolved", "solution": "Cleared"}
        )

    result = asyncio.run(scenario())

    assert result.ok
    [item] = context.attendances.state.items
    assert (item.status, item.solution) == ("resolved", "Cleared")
    assert (item.title, item.description, item.priority) == (
        "Printer jam",
        "Tray 2",
        "high",
    )
    assert item.customer.name == "Acme"


def _sign_in(context, fake_auth, db):
    identity = asyncio.run(
        fake_auth.admin.create_user(
            {"email": "op@x.com", "password": "secret1", "user_metadata": {}}
        )
    ).user
    db.seed("users", id=identity.id, email="op@x.com", name="Operator", role="admin")

    async def scenario():
        await context.start()
        await fake_auth.sign_in_with_password(
            {"email": "op@x.com", "password": "secret1"}
        )

    asyncio.run(scenario())
    return identity


def test_comments_come_back_in_submission_order(context, fake_auth, db):
    customer = db.seed("customers", name="Acme")
    attendant = db.seed("users", email="bob@x.com", name="Bob", role="attendant")
    ticket = db.seed(
        "attendances",
        customer_id=customer["id"],
        attendant_id=attendant["id"],
        title="Printer jam",
        status="open",
        priority="high",
    )
    operator = _sign_in(context, fake_auth, db)
    ticket_id = uuid.UUID(ticket["id"])

    async def scenario():
        await context.attendances.fetch_comments(ticket_id)
        first = await context.attendances.add_comment(ticket_id, "Checked the tray")
        second = await context.attendances.add_comment(ticket_id, {"content": "Replaced roller"})
        assert first.ok and second.ok
        return await context.attendances.fetch_comments(ticket_id)

    result = asyncio.run(scenario())

    assert [c.content for c in result.value] == ["Checked the tray", "Replaced roller"]
    assert all(str(c.author_id) == operator.id for c in result.value)
    assert result.value[0].author.name == "Operator"
    assert [c.content for c in context.attendances.state.comments] == [
        "Checked the tray",
        "Replaced roller",
    ]


def test_comment_requires_a_session(context, db):
    customer = db.seed("customers", name="Acme")
    attendant = db.seed("users", email="bob@x.com", name="Bob", role="attendant")
    ticket = db.seed(
        "attendances",
        customer_id=customer["id"],
        attendant_id=attendant["id"],
        title="Printer jam",
    )

    result = asyncio.run(
        context.attendances.add_comment(uuid.UUID(ticket["id"]), "hello")
    )

    assert result.error.kind is ErrorKind.AUTHORIZATION
    assert db.count("attendance_comments", "insert") == 0


def test_blank_comment_is_rejected(context, fake_auth, db):
    _sign_in(context, fake_auth, db)

    result = asyncio.run(context.attendances.add_comment(uuid.uuid4(), "   "))

    assert result.error.kind is ErrorKind.VALIDATION


def test_comment_author_is_the_caller_not_the_process_session(
    context, fake_auth, db, make_caller
):
    customer = db.seed("customers", name="Acme")
    staff = db.seed("users", email="staff@x.com", name="Staff", role="attendant")
    ticket = db.seed(
        "attendances",
        customer_id=customer["id"],
        attendant_id=staff["id"],
        title="Printer jam",
    )
    _sign_in(context, fake_auth, db)
    caller = make_caller(staff["id"], "staff@x.com")

    result = asyncio.run(
        context.attendances.add_comment(
            uuid.UUID(ticket["id"]), "On my way", caller=caller
        )
    )

    assert result.ok
    assert str(result.value.author_id) == staff["id"]
    comment_calls = [t for t in db.tokens if t[0] == "attendance_comments"]
    assert [op for _, op, _ in comment_calls] == ["insert", "select"]
    assert {token for _, _, token in comment_calls} == {caller.access_token}
