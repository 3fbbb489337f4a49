import pandas as pd
import pytest

from budget_forecast.snapshot import MonthlySnapshot, build_snapshot, progressive_window


def _build_df(rows):
    return pd.DataFrame(rows)


def test_progressive_window_keeps_months_up_to_reference():
    assert progressive_window(['2024-03', '2024-01', '2024-05', '2024-03'], '2024-04') == ['2024-01', '2024-03']


def test_progressive_window_caps_at_most_recent_months():
    keys = [str(p) for p in pd.period_range('2023-01', '2024-06', freq='M')]
    window = progressive_window(keys, '2024-06')
    assert len(window) == 12
    assert window[0] == '2023-07'
    assert window[-1] == '2024-06'


def test_progressive_window_rejects_malformed_reference():
    with pytest.raises(ValueError):
        progressive_window(['2024-01'], 'March 2024')


def test_empty_history_gives_estimated_zero_snapshot():
    snapshot = build_snapshot([], '2025-03')
    assert snapshot.month_key == '2025-03'
    assert snapshot.variable_average == 0.0
    assert snapshot.months_considered == 0
    assert snapshot.is_estimated
    assert snapshot.total == 0.0


def test_snapshot_sums_reference_month_only():
    df = _build_df([
        {'id': '1', 'Date': '2025-02-05', 'Amount': 250, 'Description': 'Rata 1/10 - Younited'},
        {'id': '2', 'Date': '2025-03-05', 'Amount': 250, 'Description': 'Rata 2/10 - Younited'},
        {'id': '3', 'Date': '2025-03-07', 'Amount': 300, 'Description': 'Bonifico a mamma', 'Category': 'fissa'},
        {'id': '4', 'Date': '2025-03-10', 'Amount': 12.99, 'Description': 'Spotify', 'Recurring': True},
        {'id': '5', 'Date': '2025-03-12', 'Amount': 80, 'Bill Type': 'luce'},
        {'id': '6', 'Date': '2025-03-01', 'Amount': 700, 'Category': 'casa'},
        {'id': '7', 'Date': '2025-04-01', 'Amount': 700, 'Category': 'casa'},
    ])

    snapshot = build_snapshot(df, '2025-03')

    assert snapshot.loans == pytest.approx(250)
    assert snapshot.transfers == pytest.approx(300)
    assert snapshot.subscriptions == pytest.approx(12.99)
    assert snapshot.bills == pytest.approx(80)
    assert snapshot.fixed == pytest.approx(700)
    assert snapshot.fixed_total == pytest.approx(250 + 300 + 12.99 + 700)


def test_variable_average_uses_progressive_window():
    df = _build_df([
        {'id': '1', 'Date': '2024-01-10', 'Amount': 100, 'Category': 'cibo'},
        {'id': '2', 'Date': '2024-03-10', 'Amount': 200, 'Category': 'svago'},
        {'id': '3', 'Date': '2024-03-20', 'Amount': 100, 'Category': 'cibo'},
        {'id': '4', 'Date': '2024-05-10', 'Amount': 999, 'Category': 'cibo'},
    ])

    snapshot = build_snapshot(df, '2024-04')

    assert snapshot.months_considered == 2
    assert snapshot.variable_average == pytest.approx((100 + 300) / 2)
    assert snapshot.is_estimated
    assert snapshot.variable_by_month == {'2024-01': 100.0, '2024-03': 300.0}


def test_long_history_is_capped_and_not_estimated():
    rows = [
        {'id': str(i), 'Date': f'{period}-15', 'Amount': 100 + i, 'Category': 'cibo'}
        for i, period in enumerate(pd.period_range('2023-01', '2024-02', freq='M'))
    ]

    snapshot = build_snapshot(_build_df(rows), '2024-02')

    assert snapshot.months_considered == 12
    assert not snapshot.is_estimated
    # Window is 2023-03..2024-02, i.e. rows 2..13
    assert snapshot.variable_average == pytest.approx(sum(100 + i for i in range(2, 14)) / 12)


def test_estimation_flag_tracks_window_size():
    rows = [
        {'id': str(i), 'Date': f'2024-0{m}-10', 'Amount': 50, 'Category': 'cibo'}
        for i, m in enumerate((1, 2, 3))
    ]
    assert build_snapshot(_build_df(rows[:2]), '2024-03').is_estimated
    assert not build_snapshot(_build_df(rows), '2024-03').is_estimated


def test_undated_expenses_are_ignored():
    df = _build_df([
        {'id': '1', 'Date': 'not a date', 'Amount': 500, 'Category': 'cibo'},
        {'id': '2', 'Date': '2024-03-10', 'Amount': 50, 'Category': 'cibo'},
    ])
    snapshot = build_snapshot(df, '2024-03')
    assert snapshot.variable_average == pytest.approx(50)
    assert snapshot.months_considered == 1


def test_snapshot_to_dict_includes_derived_totals():
    snapshot = MonthlySnapshot(month_key='2025-01', loans=100, fixed=50, variable_average=20, bills=5)
    data = snapshot.to_dict()
    assert data['fixed_total'] == pytest.approx(150)
    assert data['total'] == pytest.approx(175)
