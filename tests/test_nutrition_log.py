from datetime import timedelta

import pytest

from conftest import at
from studio.errors import NotFoundError, ValidationError
from studio.models.tables import ClientBadges
from studio.services import nutrition_log
from studio.services.nutrition import calculate_macros

NOW = at("2025-03-10 12:00")
TODAY = "2025-03-10"


def food(name="Chicken", meal="lunch", protein=40, carbs=0, fats=5, calories=205):
    return {
        "name": name,
        "meal": meal,
        "protein": protein,
        "carbs": carbs,
        "fats": fats,
        "calories": calories,
    }


@pytest.fixture
def client(make_client):
    return make_client(name="Nia Eats")


@pytest.fixture
def targets(db, client):
    return nutrition_log.save_targets(db, client, calories=2000, protein=150, carbs=200, fats=60, now=NOW)


def badge_ids(db, client):
    return [b.badge_id for b in db.query(ClientBadges).filter(ClientBadges.client_id == client.id)]


def log_protein(db, client, day, grams):
    nutrition_log.add_entry(db, client, day.isoformat(), food(protein=grams), now=NOW)


def test_empty_day(db, client):
    day = nutrition_log.get_day(db, client.id, TODAY)
    assert day.entries == []
    assert day.totals == {"protein": 0, "carbs": 0, "fats": 0, "calories": 0}
    assert day.targets is None
    assert day.remaining is None
    assert day.progress is None


def test_entries_sum_against_targets(db, client, targets):
    nutrition_log.add_entry(db, client, TODAY, food(), now=NOW)
    day = nutrition_log.add_entry(
        db, client, TODAY, food("Rice", "dinner", protein=5, carbs=45, fats=1, calories=209), now=NOW,
    )

    assert [e["name"] for e in day.entries] == ["Chicken", "Rice"]
    assert day.entries[0]["addedAt"] == NOW.isoformat()
    assert day.totals == {"protein": 45, "carbs": 45, "fats": 6, "calories": 414}
    assert day.remaining == {"protein": 105, "carbs": 155, "fats": 54, "calories": 1586}
    assert day.progress["protein"] == 30


def test_going_over_target_caps_progress(db, client, targets):
    day = nutrition_log.add_entry(db, client, TODAY, food(protein=200), now=NOW)
    assert day.remaining["protein"] == 0
    assert day.progress["protein"] == 100


def test_days_are_kept_apart(db, client):
    nutrition_log.add_entry(db, client, "2025-03-09", food(), now=NOW)
    assert nutrition_log.get_day(db, client.id, TODAY).entries == []


def test_targets_from_macro_calculator(db, client):
    result = calculate_macros("male", 30, 80, "moderate", "moderate", goal="maintain", height=180)
    targets = nutrition_log.save_calculated_targets(db, client, result, goal="maintain", now=NOW)

    assert (targets.calories, targets.protein, targets.carbs, targets.fats) == (
        result.target_calories, result.protein, result.carbs, result.fats,
    )
    assert targets.goal == "maintain"

    first_id = targets.id
    again = nutrition_log.save_targets(db, client, 1800, 140, 150, 60, now=NOW)
    assert again.id == first_id
    assert again.calories == 1800


def test_negative_targets_are_rejected(db, client):
    with pytest.raises(ValidationError):
        nutrition_log.save_targets(db, client, 2000, -1, 200, 60, now=NOW)


@pytest.mark.parametrize("entry", [
    food(name="  "),
    food(meal="brunch"),
    food(protein=-1),
])
def test_invalid_entry_is_rejected(db, client, entry):
    with pytest.raises(ValidationError):
        nutrition_log.add_entry(db, client, TODAY, entry, now=NOW)


def test_invalid_date_is_rejected(db, client):
    with pytest.raises(ValidationError):
        nutrition_log.add_entry(db, client, "2025-02-30", food(), now=NOW)


def test_remove_entry(db, client):
    day = nutrition_log.add_entry(db, client, TODAY, food(), now=NOW)
    entry_id = day.entries[0]["id"]

    day = nutrition_log.remove_entry(db, client, TODAY, entry_id, now=NOW)
    assert day.entries == []

    with pytest.raises(NotFoundError):
        nutrition_log.remove_entry(db, client, TODAY, entry_id, now=NOW)


def test_copy_day_appends_with_new_ids(db, client):
    source = nutrition_log.add_entry(db, client, "2025-03-09", food(), now=NOW)
    nutrition_log.add_entry(db, client, TODAY, food("Oats", "breakfast", protein=10), now=NOW)

    day = nutrition_log.copy_day(db, client, "2025-03-09", TODAY, now=NOW)

    assert [e["name"] for e in day.entries] == ["Oats", "Chicken"]
    assert day.entries[1]["id"] != source.entries[0]["id"]
    assert day.totals["protein"] == 50
    assert len(nutrition_log.get_day(db, client.id, "2025-03-09").entries) == 1


def test_copy_from_empty_or_same_day(db, client):
    with pytest.raises(ValidationError, match="No food logged"):
        nutrition_log.copy_day(db, client, "2025-03-01", TODAY, now=NOW)

    nutrition_log.add_entry(db, client, TODAY, food(), now=NOW)
    with pytest.raises(ValidationError):
        nutrition_log.copy_day(db, client, TODAY, TODAY, now=NOW)


def test_protein_streak_awards_badge_on_seventh_day(db, client, targets):
    for days_ago in range(6, 0, -1):
        log_protein(db, client, NOW.date() - timedelta(days=days_ago), 150)
    assert badge_ids(db, client) == []

    log_protein(db, client, NOW.date(), 149)
    assert badge_ids(db, client) == []

    log_protein(db, client, NOW.date(), 1)
    assert badge_ids(db, client) == ["nutrition_7"]


def test_missed_day_breaks_streak(db, client, targets):
    for days_ago in (6, 5, 4, 2, 1, 0):
        log_protein(db, client, NOW.date() - timedelta(days=days_ago), 150)

    assert nutrition_log.protein_streak(db, client.id, NOW.date(), 150) == 3
    assert badge_ids(db, client) == []


def test_no_streak_without_targets(db, client):
    for days_ago in range(7):
        log_protein(db, client, NOW.date() - timedelta(days=days_ago), 300)
    assert nutrition_log.check_protein_streak(db, client, NOW) is False
    assert badge_ids(db, client) == []
