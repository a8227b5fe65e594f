"""Test the Dyson protocol codec."""

import json

import pytest

from custom_components.dyson_pure_cool.capabilities import lookup
from custom_components.dyson_pure_cool.codec import (
    CURRENT_STATE_IDLE,
    CURRENT_STATE_INACTIVE,
    CURRENT_STATE_PURIFYING,
    TARGET_MODE_AUTO,
    TARGET_MODE_MANUAL,
    build_command,
    celsius_to_kelvin_tenths,
    decode_air_quality,
    decode_environmental,
    decode_fan_speed,
    decode_filter_life,
    decode_message,
    decode_product_state,
    encode_fan_speed,
    encode_humidity_target,
    extract_state,
    hcho_quality,
    kelvin_tenths_to_celsius,
    no2_quality,
    parse_message,
    parse_numeric,
    pm10_quality,
    pm25_quality,
    raw_product_state,
    round_half_up,
    voc_quality,
)

ADVANCED = lookup("438E")
LINK = lookup("475")


class TestParseNumeric:
    """Test numeric field parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("0005", 5), ("2955", 2955), (42, 42), (3.9, 3), (" 12 ", 12)],
    )
    def test_numbers(self, value, expected):
        """Test that numeric fields parse."""
        assert parse_numeric(value) == expected

    @pytest.mark.parametrize(
        "value", ["OFF", "INIT", "INV", "INH", "off", "", "AUTO", None, True, float("nan"), []]
    )
    def test_sentinels_and_junk(self, value):
        """Test that sentinels never become numbers."""
        assert parse_numeric(value) is None

    def test_round_half_up(self):
        """Test that halves round upward."""
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2


class TestQualityScales:
    """Test pollutant to quality level mapping."""

    @pytest.mark.parametrize(
        ("value", "level"), [(0, 1), (35, 1), (36, 2), (53, 2), (70, 3), (150, 4), (151, 5)]
    )
    def test_pm25(self, value, level):
        """Test PM2.5 thresholds."""
        assert pm25_quality(value) == level

    @pytest.mark.parametrize(("value", "level"), [(50, 1), (75, 2), (100, 3), (350, 4), (351, 5)])
    def test_pm10(self, value, level):
        """Test PM10 thresholds."""
        assert pm10_quality(value) == level

    @pytest.mark.parametrize(("value", "level"), [(24, 1), (25, 2), (48, 2), (64, 3), (65, 4)])
    def test_voc_is_scaled(self, value, level):
        """Test that raw VOC readings are scaled by 0.125."""
        assert voc_quality(value) == level

    def test_no2_without_sensor(self):
        """Test that a missing NO2 reading scores zero."""
        assert no2_quality(None) == 0
        assert no2_quality(30) == 1
        assert no2_quality(91) == 5

    @pytest.mark.parametrize(("value", "level"), [(99, 1), (100, 2), (299, 2), (499, 3), (500, 4)])
    def test_hcho(self, value, level):
        """Test formaldehyde thresholds."""
        assert hcho_quality(value) == level


class TestAirQuality:
    """Test decoding air quality readings."""

    def test_advanced_overall_is_worst_level(self):
        """Test that the overall score is the worst individual score."""
        data = {"p25r": "0040", "p10r": "0020", "va10": "0010", "noxl": "0005", "hchr": "0002"}
        result = decode_air_quality(data, ADVANCED)
        assert result == {
            "pm25": 40,
            "pm10": 20,
            "voc": 10,
            "no2": 5,
            "hcho": 0.002,
            "air_quality": 2,
        }

    def test_advanced_prefers_raw_particulates(self):
        """Test that p25r and p10r win over pm25 and pm10."""
        data = {"p25r": "0010", "pm25": "0090", "p10r": "0011", "pm10": "0200"}
        result = decode_air_quality(data, ADVANCED)
        assert result["pm25"] == 10
        assert result["pm10"] == 11

    @pytest.mark.parametrize("sentinel", ["OFF", "INIT"])
    def test_sentinel_suppresses_whole_frame(self, sentinel):
        """Test that one inactive sensor drops every air quality value."""
        data = {"p25r": "0040", "p10r": "0020", "va10": sentinel, "noxl": "0005"}
        assert decode_air_quality(data, ADVANCED) == {}

    def test_link_model_uses_basic_readings(self):
        """Test pact and vact on Link models."""
        result = decode_air_quality({"pact": "0005", "vact": "0002"}, LINK)
        assert result == {"air_quality": 3}

    def test_nothing_to_score(self):
        """Test that no readings give no overall score."""
        assert decode_air_quality({}, LINK) == {}


class TestEnvironmental:
    """Test decoding environmental frames."""

    def test_temperature_and_humidity(self):
        """Test conversion from kelvin tenths and offsets."""
        result = decode_environmental({"tact": "2955", "hact": "0045"}, LINK, 1.5, -5)
        assert result["temperature"] == 24.0
        assert result["humidity"] == 40

    def test_humidity_is_clamped(self):
        """Test that the humidity offset cannot leave 0-100."""
        assert decode_environmental({"hact": "0098"}, LINK, 0, 10)["humidity"] == 100
        assert decode_environmental({"hact": "0002"}, LINK, 0, -10)["humidity"] == 0

    def test_sentinel_temperature_is_skipped(self):
        """Test that OFF temperature yields no key."""
        assert "temperature" not in decode_environmental({"tact": "OFF"}, LINK)


class TestProductState:
    """Test decoding product state frames."""

    def test_extract_current_state(self):
        """Test that scalar fields pass through."""
        assert extract_state({"fpwr": "ON", "bad": ["a", "b"]}, is_change=False) == {"fpwr": "ON"}

    def test_extract_state_change_uses_new_value(self):
        """Test that state changes keep the second element."""
        state = extract_state({"fpwr": ["OFF", "ON"], "oson": "ON"}, is_change=True)
        assert state == {"fpwr": "ON"}

    def test_active_and_purifying(self):
        """Test active and current state derivation."""
        result = decode_product_state({"fpwr": "ON", "fnst": "FAN", "auto": "OFF"})
        assert result["active"] is True
        assert result["current_state"] == CURRENT_STATE_PURIFYING
        assert result["target_mode"] == TARGET_MODE_MANUAL

    def test_active_but_idle(self):
        """Test that a stopped fan on an active unit is idle."""
        result = decode_product_state({"fpwr": "ON", "fnst": "OFF"})
        assert result["current_state"] == CURRENT_STATE_IDLE

    def test_link_model_power_from_fan_mode(self):
        """Test that fmod OFF means inactive on Link models."""
        result = decode_product_state({"fmod": "OFF", "fnst": "FAN"})
        assert result["active"] is False
        assert result["current_state"] == CURRENT_STATE_INACTIVE
        assert result["target_mode"] == TARGET_MODE_MANUAL

    def test_auto_field_wins_over_fan_mode(self):
        """Test that auto is preferred over fmod."""
        result = decode_product_state({"fmod": "FAN", "auto": "ON"})
        assert result["target_mode"] == TARGET_MODE_AUTO

    def test_fan_speed(self):
        """Test fixed and automatic fan speeds."""
        assert decode_product_state({"fnsp": "0007"})["fan_speed"] == 70
        result = decode_product_state({"fnsp": "AUTO"})
        assert result["fan_speed_auto"] is True
        assert "fan_speed" not in result

    def test_flags(self):
        """Test the simple on/off flags."""
        result = decode_product_state(
            {"oson": "ON", "nmod": "OFF", "fdir": "ON", "rhtm": "ON"}
        )
        assert result["oscillating"] is True
        assert result["night_mode"] is False
        assert result["jet_focus"] is True
        assert result["continuous_monitoring"] is True

    def test_heating_and_humidifier(self):
        """Test heating and humidifier fields."""
        result = decode_product_state(
            {"hmod": "HEAT", "hmax": "2980", "hume": "HUMD", "haut": "OFF", "humt": "0050"}
        )
        assert result["heating_mode"] is True
        assert result["heating_target"] == 25.0
        assert result["humidifier_active"] is True
        assert result["humidifier_auto"] is False
        assert result["humidity_target"] == 50

    def test_state_change_frame(self):
        """Test a full STATE-CHANGE message."""
        message = {"msg": "STATE-CHANGE", "product-state": {"fpwr": ["ON", "OFF"]}}
        assert decode_message(message, ADVANCED)["active"] is False
        assert raw_product_state(message) == {"fpwr": "OFF"}

    def test_state_change_matches_current_state(self):
        """Test that both state kinds decode the same new values identically."""
        current = {
            "fpwr": "ON",
            "fmod": "FAN",
            "auto": "OFF",
            "fnst": "FAN",
            "fnsp": "0007",
            "oson": "ON",
            "nmod": "OFF",
            "fdir": "ON",
            "rhtm": "ON",
            "cflr": "0050",
            "hflr": "0030",
            "hmod": "HEAT",
            "hmax": "2980",
            "hume": "HUMD",
            "haut": "OFF",
            "humt": "0050",
        }
        change = {key: ["OFF", value] for key, value in current.items()}

        from_current = decode_message(
            {"msg": "CURRENT-STATE", "product-state": current}, ADVANCED
        )
        from_change = decode_message(
            {"msg": "STATE-CHANGE", "product-state": change}, ADVANCED
        )

        assert from_change == from_current
        assert from_current["fan_speed"] == 70
        assert from_current["filter_life"] == 30


class TestFilterLife:
    """Test filter life decoding."""

    def test_lowest_percentage_counts(self):
        """Test that the worst filter decides."""
        assert decode_filter_life({"cflr": "50", "hflr": "30"}) == (30, False)
        assert decode_filter_life({"cflr": "5", "hflr": "30"}) == (5, True)
        assert decode_filter_life({"hflr": "0080", "cflr": "0005"}) == (5, True)

    def test_invalid_and_inhibited_read_full(self):
        """Test that INV and INH mean a full filter."""
        assert decode_filter_life({"hflr": "0040", "cflr": "INV"}) == (40, False)
        assert decode_filter_life({"cflr": "INH"}) == (100, False)

    def test_filter_hours(self):
        """Test the Link model hour counter."""
        assert decode_filter_life({"filf": "4320"}) == (100, False)
        assert decode_filter_life({"filf": "0300"}) == (7, True)
        assert decode_filter_life({"filf": "9999"}) == (100, False)

    def test_no_filter_fields(self):
        """Test that no filter fields decode to nothing."""
        assert decode_filter_life({"fpwr": "ON"}) is None


class TestEncoders:
    """Test outbound value encoding."""

    def test_fan_speed(self):
        """Test percentage to zero padded speed."""
        assert encode_fan_speed(50) == "0005"
        assert encode_fan_speed(45) == "0005"
        assert encode_fan_speed(100) == "0010"
        assert encode_fan_speed(150) == "0010"
        assert decode_fan_speed("0003") == 30

    @pytest.mark.parametrize("percent", range(0, 101, 10))
    def test_fan_speed_round_trip(self, percent):
        """Test every 10 percent step through the padded encoding."""
        encoded = encode_fan_speed(percent)
        assert len(encoded) == 4
        assert decode_fan_speed(encoded) == percent

    def test_fan_speed_zero(self):
        """Test that zero encodes with full padding."""
        assert encode_fan_speed(0) == "0000"
        assert decode_fan_speed("0000") == 0

    def test_heating_target(self):
        """Test Celsius to kelvin tenths and back."""
        assert celsius_to_kelvin_tenths(25) == "2980"
        assert celsius_to_kelvin_tenths(25, offset=1) == "2970"
        assert kelvin_tenths_to_celsius("2980") == 25.0
        assert kelvin_tenths_to_celsius("OFF") is None

    def test_humidity_target(self):
        """Test humidity target padding."""
        assert encode_humidity_target(45) == "0045"

    def test_build_command(self):
        """Test the command envelope."""
        command = build_command("STATE-SET", {"fpwr": "ON"}, timestamp="2024-01-01T00:00:00.000Z")
        assert command == {
            "msg": "STATE-SET",
            "time": "2024-01-01T00:00:00.000Z",
            "data": {"fpwr": "ON"},
        }
        assert "data" not in build_command("REQUEST-CURRENT-STATE")


class TestMessages:
    """Test inbound message handling."""

    def test_parse_message(self):
        """Test that only JSON objects are accepted."""
        assert parse_message(json.dumps({"msg": "X"}).encode()) == {"msg": "X"}
        assert parse_message(b"not json") is None
        assert parse_message(b"[1, 2]") is None
        assert parse_message(b"\xff\xfe") is None

    def test_environmental_message(self):
        """Test an ENVIRONMENTAL-CURRENT-SENSOR-DATA frame."""
        message = {"msg": "ENVIRONMENTAL-CURRENT-SENSOR-DATA", "data": {"tact": "2930"}}
        assert decode_message(message, ADVANCED) == {"temperature": 20.0}

    def test_unknown_message_kind(self):
        """Test that unknown kinds decode to nothing."""
        assert decode_message({"msg": "HELLO"}, ADVANCED) == {}
        assert decode_message({"msg": "CURRENT-STATE", "product-state": "x"}, ADVANCED) == {}
