import pytest

from services.errors import InvalidPolarityError
from services.figures import EnergyProfile
from services.losses import SubClientInput, calculate_losses, interval_values, sharing_fraction
from tests.factories import reading

D = "01-03-2025"


def rows(*nets):
    """Net active values (kWh, I-E) at consecutive interval starts of one day."""
    return [reading(D, net=n, start=f"00:{15 * i:02d}") for i, n in enumerate(nets)]


class TestIntervalValues:

    def test_mwh_with_polarity(self):
        values = interval_values(rows(-1000, 500), EnergyProfile(mf=2.0, pn=-1))
        assert [v.raw for v in values] == [2.0, -1.0]

    def test_net_derived_from_active_when_missing(self):
        values = interval_values([reading(D, ae=3000, ai=1000)], EnergyProfile(mf=1.0, pn=-1))
        assert values[0].raw == 2.0

    def test_invalid_polarity(self):
        with pytest.raises(InvalidPolarityError):
            interval_values(rows(-1000), EnergyProfile(mf=1.0, pn=0))


class TestSharingFraction:

    @pytest.mark.parametrize("share,expected", [("25", 0.25), ("12.5", 0.125), (100, 1.0), ("0", 0.0)])
    def test_valid(self, share, expected):
        assert sharing_fraction({"sharing_percentage": share}) == expected

    @pytest.mark.parametrize("share", [None, "abc", "-5", "120"])
    def test_invalid(self, share):
        assert sharing_fraction({"name": "P", "sharing_percentage": share}) is None


class TestCalculateLosses:
    """Main injects 3.0 MWh, subs meter 1.8 + 1.5 = 3.3 MWh."""

    @pytest.fixture
    def main_profile(self):
        return EnergyProfile(mf=1.0, pn=-1)

    @pytest.fixture
    def subs(self):
        return [
            SubClientInput(
                snapshot={"id": 1, "name": "Sub A", "dc_capacity_kwp": "1,000"},
                profile=EnergyProfile(mf=1.0, pn=-1),
                readings=rows(-600, -1200),
                parts=[
                    {"name": "Part 1", "sharing_percentage": "60"},
                    {"name": "Part 2", "sharing_percentage": "40"},
                    {"name": "Part X", "sharing_percentage": "abc"},
                ],
            ),
            SubClientInput(
                snapshot={"id": 2, "name": "Sub B"},
                profile=EnergyProfile(mf=1.0, pn=-1),
                readings=rows(-500, -1000),
            ),
        ]

    @pytest.fixture
    def result(self, main_profile, subs):
        return calculate_losses(main_profile, rows(-1000, -2000), subs)

    def test_gross_figures(self, result):
        assert result["main_block"]["gross_injection_mwh"] == pytest.approx(3.0)
        assert result["main_block"]["drawl_mwh"] == 0.0
        a, b = result["sub_clients"]
        assert a["gross_injection_mwh"] == pytest.approx(1.8)
        assert b["gross_injection_mwh"] == pytest.approx(1.5)
        assert result["sub_overall"]["overall_gross_injected_units"] == pytest.approx(3.3)

    def test_difference_and_weightage(self, result):
        assert result["difference"]["diff_injected_units"] == pytest.approx(0.3)
        a, b = result["sub_clients"]
        assert a["weightage_gross_injecting"] == pytest.approx(1.8 / 3.3 * 100)
        assert a["losses_injected_units"] == pytest.approx(0.3 * 1.8 / 3.3)
        assert a["losses_injected_percent"] == pytest.approx(0.3 / 3.3 * 100)
        assert b["losses_injected_percent"] == pytest.approx(a["losses_injected_percent"])
        # no drawl anywhere: every drawl ratio is zero-guarded
        assert a["weightage_gross_drawl"] == 0.0
        assert a["losses_drawl_percent"] == 0.0

    def test_after_losses_reconcile_to_main(self, result):
        a, b = result["sub_clients"]
        assert a["gross_injection_mwh_after_losses"] == pytest.approx(1.8 * 3.0 / 3.3)
        total = a["gross_injection_mwh_after_losses"] + b["gross_injection_mwh_after_losses"]
        assert total == pytest.approx(result["main_block"]["gross_injection_mwh"])

    def test_allocation_audit(self, result):
        a = result["sub_clients"][0]
        first = a["intervals"][0]
        assert first["raw"] == pytest.approx(0.6)
        assert first["allocated_group"] == pytest.approx(0.6 + (0.6 / 1.1) * (1.0 - 1.1))
        assert sum(r["discom_scaled"] for r in a["intervals"]) == pytest.approx(1.8)

    def test_part_client_split(self, result):
        a = result["sub_clients"][0]
        p1, p2, px = a["part_clients"]
        assert p1["gross_injection_mwh_after_losses"] == pytest.approx(a["gross_injection_mwh_after_losses"] * 0.6)
        assert p2["gross_injection_mwh"] == pytest.approx(1.8 * 0.4)
        assert p1["weightage_gross_injecting"] == pytest.approx(a["weightage_gross_injecting"] * 0.6)
        assert p1["losses_injected_percent"] == a["losses_injected_percent"]
        assert px["gross_injection_mwh_after_losses"] == 0.0
        assert result["part_clients_with_invalid_share"] == ["Part X"]

    def test_sldc_rescale_removes_difference(self, main_profile, subs):
        result = calculate_losses(main_profile, rows(-1000, -2000), subs, approved_injection=3.3)
        assert result["audit"]["main_scale"]["f_pos"] == pytest.approx(1.1)
        assert result["main_block"]["gross_injection_mwh"] == pytest.approx(3.3)
        assert result["difference"]["diff_injected_units"] == pytest.approx(0.0)
        assert result["sldc"]["as_per_approved_injection"] == pytest.approx(0.0)
        a = result["sub_clients"][0]
        assert a["gross_injection_mwh_after_losses"] == pytest.approx(1.8)

    def test_discom_targets(self, main_profile, subs):
        result = calculate_losses(
            main_profile, rows(-1000, -2000), subs,
            approved_injection=3.3, discom_targets={"DGVCL": "2.5", "MGVCL": 0},
        )
        assert result["per_discom_totals"]["DGVCL"] == 2.5
        assert result["excess_injection_ppa"] == 0.8
        total = sum(s["gross_injection_mwh_after_losses"] for s in result["sub_clients"])
        assert total == pytest.approx(2.5)
        assert result["audit"]["discom_net_scale"]["sum_discom_targets"] == 2.5

    def test_energy_drawn_defaults_to_main_drawl(self, result):
        assert result["energy_drawn_from_discom"] == result["main_block"]["drawl_mwh"]
        assert result["excess_injection_ppa"] == 0.0

    def test_drawl_side(self, main_profile):
        subs = [
            SubClientInput(snapshot={"name": "Sub A"}, profile=EnergyProfile(1.0, -1), readings=rows(200, -800)),
            SubClientInput(snapshot={"name": "Sub B"}, profile=EnergyProfile(1.0, -1), readings=rows(200, -200)),
        ]
        result = calculate_losses(main_profile, rows(300, -1000), subs)
        a, b = result["sub_clients"]
        assert result["main_block"]["drawl_mwh"] == pytest.approx(-0.3)
        assert result["difference"]["diff_drawl_units"] == pytest.approx(-0.4 - (-0.3))
        assert a["weightage_gross_drawl"] == pytest.approx(50.0)
        assert a["drawl_mwh_after_losses"] + b["drawl_mwh_after_losses"] == pytest.approx(-0.3)

    def test_no_sub_clients(self, main_profile):
        result = calculate_losses(main_profile, rows(-1000), [])
        assert result["sub_clients"] == []
        assert result["difference"]["diff_injected_units"] == pytest.approx(-1.0)
