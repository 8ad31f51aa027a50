import pytest

from cityworld.sim.config import WorldConfig


def test_defaults() -> None:
    config = WorldConfig()

    assert config.day_start_hour == 6
    assert config.night_start_hour == 20
    assert config.weather_change_probability == 0.1
    assert config.random_encounter_probability == 0.15
    assert config.travel_speed_km_per_hour == 30.0
    assert config.is_night_hour(20) and config.is_night_hour(5)
    assert not config.is_night_hour(6) and not config.is_night_hour(19)


def test_from_dict_keeps_unspecified_defaults() -> None:
    config = WorldConfig.from_dict({"MaxLayers": 4, "random_encounter_probability": 0.5})

    assert config.max_layers == 4
    assert config.random_encounter_probability == 0.5
    assert config.max_map_points == 1000
    assert WorldConfig.from_dict(None) == WorldConfig()


def test_round_trip_through_dict() -> None:
    config = WorldConfig(time_scale=12.0, default_map_type="street")

    assert WorldConfig.from_dict(config.to_dict()) == config


def test_unknown_option_rejected() -> None:
    with pytest.raises(ValueError, match="unknown world config option: Gravity"):
        WorldConfig.from_dict({"Gravity": 9.8})


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"weather_change_probability": 1.5}, "weather_change_probability must be within"),
        ({"travel_speed_km_per_hour": 0}, "travel_speed_km_per_hour must be > 0"),
        ({"day_start_hour": 24}, "day_start_hour must be within"),
        ({"day_start_hour": 21}, "day_start_hour must be earlier than night_start_hour"),
        ({"max_map_points": 0}, "max_map_points must be a positive integer"),
    ],
)
def test_invalid_values_rejected(overrides: dict[str, object], message: str) -> None:
    with pytest.raises(ValueError, match=message):
        WorldConfig.from_dict(overrides)
