import pytest

from app.utils.analyzer import (
    NormalizedExpense,
    coerce_amount,
    compute_basic_stats,
    normalize_expense,
    risk_level_for,
    round_half_up,
)

sample_expenses = [
    {"description": "Groceries", "category": "Food", "amount": 250.0, "createdAt": "2025-11-01T12:00:00Z"},
    {"description": "November rent", "category": "Rent", "amount": 1000.0, "createdAt": "2025-11-02T12:00:00Z"},
    {"description": "Lunch", "category": "Food", "amount": 150.0, "createdAt": "2025-11-03T12:00:00Z"},
    {"description": "Jacket", "category": "Shopping", "amount": 1200.0, "createdAt": "2025-11-04T12:00:00Z"},
]


def test_calculate_totals():
    stats = compute_basic_stats(sample_expenses)
    assert stats.total_amount == 2600.0
    assert stats.average_transaction == 650.0
    assert stats.category_breakdown == {"Food": 400.0, "Rent": 1000.0, "Shopping": 1200.0}
    assert stats.top_category == "Shopping"
    assert stats.risk_level == "high"


def test_empty_input():
    for expenses in ([], None):
        stats = compute_basic_stats(expenses)
        assert stats.normalized == ()
        assert stats.total_amount == 0
        assert stats.average_transaction == 0
        assert stats.top_category is None
        assert stats.category_breakdown == {}
        assert stats.spending_trend == "stable"
        assert stats.risk_level == "low"


def test_normalization_defaults():
    record = normalize_expense({"description": "Mystery", "amount": None, "category": ""})
    assert record == NormalizedExpense(description="Mystery", amount=0.0, category="others", date=None)


def test_normalization_accepts_objects():
    class Stored:
        description = "Taxi"
        amount = "42.50"
        category = "Travel"
        date = "2025-10-01"

    record = normalize_expense(Stored())
    assert record.amount == 42.5
    assert record.category == "Travel"
    assert record.date == "2025-10-01"


def test_date_falls_back_from_created_at_to_date():
    assert normalize_expense({"amount": 1, "createdAt": "a", "date": "b"}).date == "a"
    assert normalize_expense({"amount": 1, "date": "b"}).date == "b"
    assert normalize_expense({"amount": 1, "timestamp": "c"}).date == "c"
    assert normalize_expense({"amount": 1}).date is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12.5", 12.5),
        ("abc", 0.0),
        (None, 0.0),
        ("", 0.0),
        (float("nan"), 0.0),
        ([1, 2], 0.0),
        (-30, -30.0),
        (True, 1.0),
        (10**400, 0.0),
        ("1e400", 0.0),
    ],
)
def test_coerce_amount(raw, expected):
    assert coerce_amount(raw) == expected


def test_negative_amounts_pass_through():
    stats = compute_basic_stats([{"amount": 100, "category": "Food"}, {"amount": -40, "category": "Food"}])
    assert stats.total_amount == 60
    assert stats.category_breakdown == {"Food": 60}


def test_breakdown_sums_to_total_and_average_matches():
    expenses = [{"amount": a, "category": c} for a, c in [(10.1, "a"), (20.2, "b"), (0.3, "a"), (33.33, "c")]]
    stats = compute_basic_stats(expenses)
    assert sum(stats.category_breakdown.values()) == pytest.approx(stats.total_amount)
    assert abs(stats.average_transaction * len(expenses) - stats.total_amount) <= 0.01 * len(expenses)


def test_average_rounds_half_up():
    stats = compute_basic_stats([{"amount": 0.125}])
    assert stats.average_transaction == 0.13
    assert round_half_up(2.675, 2) == 2.68
    assert round_half_up(2.5, 0) == 3.0


def test_top_category_tie_keeps_first_inserted():
    expenses = [
        {"amount": 50, "category": "Travel"},
        {"amount": 50, "category": "Food"},
    ]
    first = compute_basic_stats(expenses)
    second = compute_basic_stats(expenses)
    assert first.top_category == "Travel"
    assert second.top_category == "Travel"


@pytest.mark.parametrize(
    "total, expected",
    [
        (799.99, "low"),
        (800.00, "low"),
        (800.01, "medium"),
        (2000.00, "medium"),
        (2000.01, "high"),
    ],
)
def test_risk_thresholds(total, expected):
    assert risk_level_for(total) == expected
    assert compute_basic_stats([{"amount": total}]).risk_level == expected


@pytest.mark.parametrize(
    "amounts, expected",
    [
        ([10, 10, 20], "increasing"),
        ([20, 10, 10], "decreasing"),
        ([10, 10, 10], "stable"),
        ([100, 104], "stable"),
        ([5, 500], "stable"),
        ([10, 10, 10, 10, 10, 10.4], "stable"),
        ([10, 10, 10, 10, 10, 12], "increasing"),
    ],
)
def test_spending_trend(amounts, expected):
    stats = compute_basic_stats([{"amount": a} for a in amounts])
    assert stats.spending_trend == expected


def test_stats_are_idempotent():
    assert compute_basic_stats(sample_expenses) == compute_basic_stats(sample_expenses)
    assert compute_basic_stats(sample_expenses).to_dict() == compute_basic_stats(sample_expenses).to_dict()


def test_to_dict_uses_camel_case_keys():
    data = compute_basic_stats(sample_expenses).to_dict()
    assert data["totalAmount"] == 2600.0
    assert data["topCategory"] == "Shopping"
    assert data["normalized"][0] == {
        "description": "Groceries",
        "amount": 250.0,
        "category": "Food",
        "date": "2025-11-01T12:00:00Z",
    }


def test_non_string_category_is_stringified():
    stats = compute_basic_stats([{"amount": 5, "category": 7}])
    assert stats.top_category == "7"


@pytest.mark.parametrize("amount", [1e27, 1e30, "1e30"])
def test_huge_amounts_keep_full_precision(amount):
    stats = compute_basic_stats([{"amount": amount}])
    assert stats.total_amount == float(amount)
    assert stats.average_transaction == float(amount)
    assert stats.risk_level == "high"


def test_overflowing_total_does_not_raise():
    stats = compute_basic_stats([{"amount": 1e308}, {"amount": 1e308}])
    assert stats.total_amount == float("inf")
    assert stats.average_transaction == float("inf")
    assert stats.risk_level == "high"
    assert stats.top_category == "others"


def test_round_half_up_passes_non_finite_values_through():
    assert round_half_up(float("inf")) == float("inf")
    assert round_half_up(1e300, 2) == 1e300
