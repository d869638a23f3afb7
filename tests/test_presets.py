from terrain.generator import GENERATORS
from terrain.presets import CATEGORIES, PRESETS, get_preset, presets_by_category


def test_builtin_presets():
    ids = [p.id for p in PRESETS]
    assert ids == ["flat", "rolling-hills", "mountains", "desert-dunes", "islands", "canyon"]
    for p in PRESETS:
        assert p.generator in GENERATORS
        assert p.category in CATEGORIES
        assert p.default_layers
        assert all(layer.id == "" for layer in p.default_layers)


def test_get_preset():
    mountains = get_preset("mountains")
    assert mountains is not None
    assert mountains.generator == "ridged"
    assert mountains.generator_params.amplitude == 100
    assert [layer.name for layer in mountains.default_layers] == ["Grass", "Rock", "Snow"]
    assert get_preset("volcano") is None


def test_presets_by_category():
    hills = presets_by_category("hills")
    assert [p.id for p in hills] == ["rolling-hills"]
    assert presets_by_category("custom") == []


def test_canyon_uses_eroded_generator():
    canyon = get_preset("canyon")
    assert canyon.generator == "hydraulic"
    assert canyon.generator_params.erosion_iterations == 1000
