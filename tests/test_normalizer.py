import pytest
from pydantic import ValidationError

from airproxy.errors import NormalizationError, UpstreamError
from airproxy.models import AirQualityRecord
from airproxy.normalizer import classify, normalize

from conftest import aqicn_payload, iqair_payload

SEVERITY = ["good", "moderate", "unhealthy", "poor", "hazardous"]


class TestClassify:
    @pytest.mark.parametrize("aqi,status", [
        (0, "good"), (50, "good"), (51, "moderate"), (100, "moderate"), (101, "unhealthy"),
        (150, "unhealthy"), (151, "poor"), (200, "poor"), (201, "hazardous"), (999, "hazardous"),
    ])
    def test_breakpoints(self, aqi, status):
        assert classify(aqi) == status

    def test_total_and_monotonic(self):
        previous = 0
        for aqi in range(0, 1000):
            rank = SEVERITY.index(classify(aqi))
            assert rank >= previous
            previous = rank


class TestPrimary:
    def test_success_envelope(self):
        record = normalize("primary", iqair_payload(aqi=42), "tashkent")
        assert record.city_id == "tashkent"
        assert record.aqi == 42
        assert record.status == classify(42) == "good"
        assert record.source == "primary"
        assert record.station == "Tashkent"
        assert record.timestamp == "2026-10-19T08:00:00.000Z"

    def test_pm25_dominant_copies_aqi(self):
        assert normalize("primary", iqair_payload(aqi=160, mainus="p2"), "tashkent").pm25 == 160

    def test_other_dominant_pollutant_leaves_pm25_empty(self):
        record = normalize("primary", iqair_payload(aqi=60, mainus="o3"), "tashkent")
        assert record.pm25 is None
        assert record.pm10 is None

    def test_missing_timestamp_uses_fetch_time(self):
        record = normalize("primary", iqair_payload(ts=None), "tashkent")
        assert record.timestamp.endswith("+00:00")

    def test_missing_aqi_is_a_normalization_error(self):
        body = iqair_payload()
        del body["data"]["current"]["pollution"]["aqius"]
        with pytest.raises(NormalizationError) as exc:
            normalize("primary", body, "tashkent")
        assert isinstance(exc.value, UpstreamError)


class TestSecondary:
    def test_success_envelope(self):
        record = normalize("secondary", aqicn_payload(aqi=87), "samarkand")
        assert record.city_id == "samarkand"
        assert record.aqi == 87
        assert record.status == "moderate"
        assert record.source == "secondary"
        assert record.station == "Tashkent US Embassy"
        assert (record.pm25, record.pm10, record.o3, record.no2) == (87, 40, 12.3, 9.1)
        assert record.so2 is None and record.co is None
        assert record.timestamp == "2026-10-19T13:00:00+05:00"

    @pytest.mark.parametrize("raw,expected", [("153", 153), (" 77 ", 77), ("-", 0), ("", 0), (None, 0), (12.9, 12)])
    def test_aqi_parsing(self, raw, expected):
        record = normalize("secondary", aqicn_payload(aqi=raw), "bukhara")
        assert record.aqi == expected
        assert record.status == classify(expected)

    def test_missing_time_uses_fetch_time(self):
        record = normalize("secondary", aqicn_payload(iso=None), "bukhara")
        assert record.timestamp.endswith("+00:00")

    def test_negative_pollutant_is_rejected(self):
        body = aqicn_payload()
        body["data"]["iaqi"]["co"] = {"v": -1}
        with pytest.raises(NormalizationError):
            normalize("secondary", body, "bukhara")

    def test_missing_data_object(self):
        with pytest.raises(NormalizationError):
            normalize("secondary", {"status": "ok", "data": "Unknown station"}, "bukhara")


def test_record_rejects_inconsistent_status():
    with pytest.raises(ValidationError):
        AirQualityRecord(cityId="tashkent", aqi=250, status="good", source="primary", timestamp="2026-10-19T08:00:00Z")


def test_record_serializes_with_dashboard_field_names():
    record = normalize("primary", iqair_payload(aqi=42, mainus="o3"), "tashkent")
    body = record.model_dump(by_alias=True, exclude_none=True)
    assert body == {
        "cityId": "tashkent",
        "aqi": 42,
        "status": "good",
        "station": "Tashkent",
        "source": "primary",
        "timestamp": "2026-10-19T08:00:00.000Z",
    }


@pytest.mark.parametrize("source,provider", [("primary", "iqair"), ("secondary", "aqicn")])
def test_non_object_body_names_the_provider(source, provider):
    with pytest.raises(NormalizationError) as exc:
        normalize(source, ["not", "an", "object"], "tashkent")
    assert exc.value.provider == provider
