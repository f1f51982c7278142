from import_engine.row_validator import (
    DESCRIPTION_PLACEHOLDER,
    DUPLICATE_EMAIL_MSG,
    DUPLICATE_ID_MSG,
    ValidationContext,
    validate_contact_row,
    validate_ticket_row,
)


def _ctx(**kwargs):
    kwargs.setdefault("category_labels", ["Hårdvara", "Mjukvara"])
    return ValidationContext(**kwargs)


def test_valid_ticket_row():
    result = validate_ticket_row(
        {"title": "Skrivare", "description": "Trasig", "status": "open",
         "priority": "high", "category": "Hårdvara"},
        _ctx(),
    )
    assert result.valid
    assert result.errors == []
    assert result.is_duplicate is False


def test_missing_title_is_an_error():
    result = validate_ticket_row({"title": "  ", "description": "x"}, _ctx())
    assert not result.valid
    assert result.errors == ["Titel saknas"]


def test_blank_description_is_filled_not_rejected():
    """Description falls back to the title, then to a placeholder."""
    result = validate_ticket_row({"title": "VPN", "description": ""}, _ctx())
    assert result.valid
    assert result.draft["description"] == "VPN"

    result = validate_ticket_row({"title": ""}, _ctx())
    assert result.draft["description"] == DESCRIPTION_PLACEHOLDER


def test_invalid_status_and_priority_list_the_valid_values():
    result = validate_ticket_row(
        {"title": "A", "status": "done", "priority": "urgent"}, _ctx(),
    )
    assert result.errors == [
        "Ogiltig status: done (giltiga: open, in-progress, waiting, resolved, closed)",
        "Ogiltig prioritet: urgent (giltiga: low, medium, high, critical)",
    ]


def test_category_matches_case_insensitively():
    assert validate_ticket_row({"title": "A", "category": "hårdvara"}, _ctx()).valid


def test_unknown_category_lists_available_categories():
    result = validate_ticket_row({"title": "A", "category": "Okänd"}, _ctx())
    assert result.errors == [
        'Kategori "Okänd" finns inte (tillgängliga: Hårdvara, Mjukvara)'
    ]


def test_existing_ticket_id_is_flagged_as_duplicate():
    """Ticket ids are compared exactly."""
    ctx = _ctx(existing_keys={"abc-123"})
    result = validate_ticket_row({"id": "abc-123", "title": "A"}, ctx)
    assert result.is_duplicate
    assert result.errors == [DUPLICATE_ID_MSG]

    assert validate_ticket_row({"id": "ABC-123", "title": "A"}, ctx).is_duplicate is False


def test_validator_does_not_mutate_the_input_row():
    row = {"title": "A", "description": ""}
    validate_ticket_row(row, _ctx())
    assert row["description"] == ""


def test_result_serialises_with_entity_key():
    result = validate_ticket_row({"title": "A"}, _ctx())
    data = result.to_dict("ticket")
    assert set(data) == {"valid", "errors", "ticket", "isDuplicate"}
    assert data["ticket"]["title"] == "A"


def test_contact_row_rules():
    ctx = ValidationContext.for_contacts(["Anna@X.se"])

    ok = validate_contact_row(
        {"name": " Bo ", "email": "bo@x.se", "phone": "", "company": "IT"}, ctx,
    )
    assert ok.valid
    assert ok.draft == {"name": "Bo", "email": "bo@x.se", "phone": None, "company": "IT"}

    missing = validate_contact_row({"name": "", "email": ""}, ctx)
    assert missing.errors == ["Namn saknas", "Email saknas"]

    bad = validate_contact_row({"name": "C", "email": "not an email"}, ctx)
    assert bad.errors == ["Ogiltig e-postadress"]


def test_contact_email_duplicate_is_case_insensitive():
    ctx = ValidationContext.for_contacts(["Anna@X.se"])
    result = validate_contact_row({"name": "Anna", "email": "anna@x.SE"}, ctx)
    assert result.is_duplicate
    assert result.errors == [DUPLICATE_EMAIL_MSG]
    assert not result.valid
