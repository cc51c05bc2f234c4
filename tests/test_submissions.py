from formportal.schemas.fields import parse_field
from formportal.services.submissions import StoreSubmissionSink, convert_submission_data, field_label_map

FIELDS = [
    parse_field({"id": "qty", "kind": "number", "label": "Quantity"}),
    parse_field({"id": "sec", "kind": "section", "label": "Section"}),
    parse_field({"id": "notes", "kind": "textarea"}),
]


def test_field_label_map_skips_structural():
    assert field_label_map(FIELDS) == {"qty": "Quantity", "notes": "notes"}


def test_convert_submission_data():
    data = convert_submission_data({"qty": 3, "sec": "x", "reportFrequency": "daily"}, FIELDS)
    assert data == {"Quantity": 3, "reportFrequency": "daily"}


async def test_store_sink_writes_submission_document(stores):
    sink = StoreSubmissionSink(stores.primary)
    await sink({"qty": 3}, "daily-sales", "u1")
    await sink({"qty": 4}, "other", "u1")

    docs = await sink.list_for_form("daily-sales")
    assert len(docs) == 1
    doc = docs[0]
    assert doc["form_identifier"] == "daily-sales"
    assert doc["user_id"] == "u1"
    assert doc["submission_data"] == {"qty": 3}
    assert doc["submitted_at"]
