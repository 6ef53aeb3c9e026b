import pytest

from services.energy import DailySeries, extract, group_daily
from services.errors import InvalidPolarityError
from services.figures import EnergyProfile
from tests.factories import reading


class TestExtract:
    """Polarity-corrected export/import."""

    def test_negative_polarity_keeps_roles(self):
        r = reading("01-03-2025", ae=100, ai=40, re=5, ri=2)
        assert extract(r, 1.0, -1) == (100, 40)

    def test_positive_polarity_swaps_roles(self):
        r = reading("01-03-2025", ae=100, ai=40)
        assert extract(r, 1.0, 1) == (40, 100)

    @pytest.mark.parametrize("mf", [1.0, 2.5, 1000.0])
    def test_polarity_symmetry(self, mf):
        r = reading("01-03-2025", ae=12.5, ai=3.25)
        exp_pos, imp_pos = extract(r, mf, 1)
        exp_neg, imp_neg = extract(r, mf, -1)
        assert exp_pos == imp_neg
        assert imp_pos == exp_neg

    def test_multiplying_factor_applied(self):
        r = reading("01-03-2025", ae=2, ai=1)
        assert extract(r, 1500.0, -1) == (3000.0, 1500.0)

    @pytest.mark.parametrize("pn", [0, 2, None, "x"])
    def test_invalid_polarity_rejected(self, pn):
        with pytest.raises(InvalidPolarityError):
            extract(reading("01-03-2025", ae=1), 1.0, pn)


class TestDailySeries:
    """Consecutive same-date grouping."""

    @pytest.fixture
    def profile(self):
        return EnergyProfile(mf=1.0, pn=-1)

    @pytest.fixture
    def readings(self):
        return [
            reading("01-03-2025", ae=60, ai=10),
            reading("01-03-2025", ae=40, ai=10),
            reading("02-03-2025", ae=50, ai=5),
        ]

    def test_groups_by_date(self, readings, profile):
        figures = list(group_daily(readings, profile))
        assert [f.date for f in figures] == ["01-03-2025", "02-03-2025"]
        assert (figures[0].export_kwh, figures[0].import_kwh) == (100, 20)
        assert (figures[1].export_kwh, figures[1].import_kwh) == (50, 5)

    def test_restartable(self, readings, profile):
        series = DailySeries(readings, profile)
        assert list(series) == list(series)

    def test_does_not_sort(self, profile):
        rows = [
            reading("02-03-2025", ae=1),
            reading("01-03-2025", ae=2),
            reading("02-03-2025", ae=3),
        ]
        figures = list(DailySeries(rows, profile))
        assert [f.date for f in figures] == ["02-03-2025", "01-03-2025", "02-03-2025"]
        assert [f.export_kwh for f in figures] == [1, 2, 3]

    def test_totals_match_entries(self, readings, profile):
        series = DailySeries(readings, profile)
        exp, imp = series.totals()
        assert exp == sum(extract(r, 1.0, -1)[0] for r in readings)
        assert imp == sum(extract(r, 1.0, -1)[1] for r in readings)

    def test_empty_meter(self, profile):
        series = DailySeries([], profile)
        assert series.is_empty()
        assert list(series) == []

    def test_malformed_date_skipped(self, profile, caplog):
        rows = [reading("01-03-2025", ae=5), reading("not-a-date", ae=100), reading("01-03-2025", ae=5)]
        figures = list(DailySeries(rows, profile, "meter"))
        assert len(figures) == 1
        assert figures[0].export_kwh == 10
        assert "malformed date" in caplog.text

    def test_invalid_profile_polarity(self):
        with pytest.raises(InvalidPolarityError):
            DailySeries([reading("01-03-2025", ae=1)], EnergyProfile(mf=1.0, pn=0))

    def test_scenario_single_entry(self, profile):
        rows = [reading("01-03-2025", ae=100, ai=40, re=5, ri=2)]
        (fig,) = list(DailySeries(rows, profile))
        assert fig.export_kwh == 100
        assert fig.import_kwh == 40
