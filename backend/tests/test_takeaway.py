"""Tests for the daily takeaway and trend caption."""

import pytest

from readiness.services.scorer import BandSystem
from readiness.services.takeaway import daily_takeaway, trend_caption


class TestDailyTakeaway:
    """Tests for the prescriptive daily takeaway."""

    def test_unavailable(self, point):
        """Undefined readiness asks for the missing inputs."""
        assert daily_takeaway(point(readiness=None)) == (
            "Readiness unavailable. Add sleep, HRV, and resting HR to generate recovery."
        )

    @pytest.mark.parametrize(
        "mode,expected",
        [
            ("daily", "High-intensity training is supported. Sleep and HRV are supportive."),
            (
                "rolling",
                "High-intensity training is supported by the trend. "
                "Sleep and HRV trends are supportive.",
            ),
        ],
    )
    def test_top_band(self, point, mode, expected):
        """The top band notes what is supportive."""
        assert daily_takeaway(point(readiness=80), mode) == expected

    def test_sleep_limiter(self, point):
        """Short sleep well below the other factors is named."""
        current = point(readiness=60, sleep=6, hrv=55, resting_hr=58)

        assert daily_takeaway(current) == (
            "Moderate training recommended. Cap peak intensity. Sleep duration was the constraint."
        )

    def test_hrv_limiter(self, point):
        """Low HRV is named in the low band."""
        current = point(readiness=40, sleep=7, hrv=35, resting_hr=60)

        assert daily_takeaway(current) == (
            "Prioritize recovery or light movement. HRV indicates incomplete recovery."
        )

    def test_rhr_limiter_rolling(self, point):
        """Rolling mode uses trend wording."""
        current = point(readiness=60, sleep=7.5, hrv=55, resting_hr=70)

        assert daily_takeaway(current, "rolling") == (
            "Moderate training recommended. Cap peak intensity for consistency. "
            "Elevated resting HR trend suggests accumulated fatigue."
        )

    def test_mixed_signals(self, point):
        """No factor stands out by more than three points."""
        current = point(readiness=60, sleep=7, hrv=50, resting_hr=62)

        assert daily_takeaway(current) == (
            "Moderate training recommended. Cap peak intensity. Mixed signals across metrics."
        )

    def test_missing_contribution_input(self, point):
        """Without all three factors only the band action is given."""
        current = point(readiness=60, sleep=None)

        assert daily_takeaway(current) == "Moderate training recommended. Cap peak intensity."

    def test_custom_bands(self, point):
        """Band thresholds come from the supplied band system."""
        current = point(readiness=80, sleep=7, hrv=50, resting_hr=62)

        assert daily_takeaway(current, bands=BandSystem(high=90, moderate=70)).startswith(
            "Moderate training recommended."
        )


class TestTrendCaption:
    """Tests for the week-over-week caption."""

    def test_no_week_ago(self, point):
        """Without a week-ago point there is no caption."""
        assert trend_caption(point(), None, 60) is None

    def test_improving_with_sleep(self, point):
        """More than 8 points up with more sleep credits sleep."""
        caption = trend_caption(point(readiness=80, sleep=8), point(readiness=70, sleep=7), 75)

        assert caption == "Readiness improving. Sleep gains driving recovery."

    def test_improving_without_sleep(self, point):
        """Otherwise the caption credits HRV and RHR."""
        caption = trend_caption(point(readiness=80, sleep=7.2), point(readiness=70, sleep=7), 75)

        assert caption == "Readiness improving. HRV and RHR showing positive adaptation."

    def test_sleep_bottleneck(self, point):
        """A decline with less sleep blames sleep."""
        caption = trend_caption(point(readiness=60, sleep=6), point(readiness=70, sleep=7), 65)

        assert caption == "Sleep was the bottleneck this week. Keep training volume moderate."

    def test_declining(self, point):
        """A decline without a sleep drop suggests reducing intensity."""
        caption = trend_caption(point(readiness=60, sleep=7), point(readiness=70, sleep=7), 65)

        assert caption == "Readiness declining. Consider a recovery day or reduced intensity."

    def test_stable(self, point):
        """Small changes report the period average."""
        caption = trend_caption(point(readiness=72), point(readiness=70), 71.4)

        assert caption == "Readiness stable around 71%. Maintain current training load."

    def test_stable_without_average(self, point):
        """Stable wording without a period average."""
        caption = trend_caption(point(readiness=72), point(readiness=70), None)

        assert caption == "Readiness stable. Maintain current training load."
