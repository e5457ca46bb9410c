"""
Tests for Supabase-backed diagnosis storage (in-memory fake client)
"""
import asyncio
from datetime import datetime, timezone

from app.models import SprayDay, TimeOfDay
from app.services.diagnosis.mock import MOCK_CATALOGUE
from app.services.storage import DiagnosisStore


def run(coro):
    return asyncio.run(coro)


RESULT = MOCK_CATALOGUE[0]


def test_save_and_list_diagnoses(fake_supabase):
    store = DiagnosisStore(fake_supabase)

    row = run(store.save_diagnosis("user-1", "https://img/1.jpg", "tomato", RESULT))
    run(store.save_diagnosis("user-2", None, "grape", MOCK_CATALOGUE[1]))

    assert row["disease_name"] == "Powdery Mildew"
    assert row["confidence_score"] == RESULT.confidence
    assert row["status"] == "pending"
    assert row["ai_diagnosis"]["possibleCauses"] == RESULT.possible_causes

    listed = run(store.list_diagnoses("user-1"))
    assert [r["id"] for r in listed] == [row["id"]]
    assert run(store.get_diagnosis(row["id"]))["plant_type"] == "tomato"
    assert run(store.get_diagnosis("missing")) is None


def test_list_newest_first(fake_supabase):
    store = DiagnosisStore(fake_supabase)
    first = run(store.save_diagnosis("user-1", None, "tomato", RESULT))
    second = run(store.save_diagnosis("user-1", None, "tomato", RESULT))

    listed = run(store.list_diagnoses("user-1", limit=1))

    assert [r["id"] for r in listed] == [second["id"]]
    assert first["id"] != second["id"]


def test_upload_image(fake_supabase):
    store = DiagnosisStore(fake_supabase, bucket="plant-images")

    uploaded = run(store.upload_image("user-1", b"jpeg-bytes", "image/png"))

    assert uploaded["path"].startswith("user-1/")
    assert uploaded["path"].endswith(".png")
    assert uploaded["url"].endswith(uploaded["path"])
    assert fake_supabase.uploads[f"plant-images/{uploaded['path']}"][0] == b"jpeg-bytes"


def test_cache_round_trip(fake_supabase):
    store = DiagnosisStore(fake_supabase)

    assert run(store.get_cached_diagnosis("abc123")) is None
    run(store.cache_diagnosis("abc123", RESULT))

    assert run(store.get_cached_diagnosis("abc123")) == RESULT


def test_cache_keeps_one_row_per_image(fake_supabase):
    store = DiagnosisStore(fake_supabase)

    run(store.cache_diagnosis("abc123", MOCK_CATALOGUE[0]))
    run(store.cache_diagnosis("abc123", MOCK_CATALOGUE[1]))
    run(store.cache_diagnosis("def456", MOCK_CATALOGUE[0]))

    assert len(fake_supabase.tables["cached_diagnoses"]) == 2
    assert run(store.get_cached_diagnosis("abc123")) == MOCK_CATALOGUE[1]


def test_spray_event_row(fake_supabase):
    store = DiagnosisStore(fake_supabase)
    day = SprayDay(
        date=datetime(2024, 7, 1, tzinfo=timezone.utc),
        score=80,
        raw_score=80,
        reasons=["Moderate wind"],
        best_time_of_day=TimeOfDay.MORNING,
        conditions="Clear",
        temperature=21.5,
        wind_speed=12.0,
        rain_probability=0.1,
    )

    row = run(store.add_spray_event("field-9", day))

    assert row["field_id"] == "field-9"
    assert row["best_time_of_day"] == "morning"
    assert row["weather_conditions"] == {
        "temp": 21.5, "wind": 12.0, "rain_probability": 0.1, "conditions": "Clear",
    }
    assert row["notes"] == "Spray score: 80%"


def test_supabase_errors_degrade(broken_supabase):
    store = DiagnosisStore(broken_supabase)

    assert run(store.save_diagnosis("user-1", None, "tomato", RESULT)) is None
    assert run(store.list_diagnoses("user-1")) == []
    assert run(store.get_cached_diagnosis("abc")) is None
    assert run(store.upload_image("user-1", b"x")) is None
    run(store.cache_diagnosis("abc", RESULT))  # logged, not raised
