import numpy as np
import pytest

from stamp_forms.config import MARK, MAX_SAMPLE, ConfigError, FormConfig
from stamp_forms.pipeline import generate_forms
from stamp_forms.rows import row_bands


def lopsided_marks():
    src = np.full((15, 20), MAX_SAMPLE, dtype=np.uint16)
    src[4:7, 2:5] = MARK
    src[10, 16] = MARK
    return src


def small_config(**kw):
    base = dict(
        punch_out_depth_mm=2.0,
        sheet_thickness_mm=0.3,
        fade_distance_mm=0.6,
        pixels_per_mm=10.0,
    )
    base.update(kw)
    return FormConfig(**base)


def test_pipeline_is_deterministic():
    a = generate_forms(lopsided_marks(), small_config())
    b = generate_forms(lopsided_marks(), small_config(workers=3, band_rows=4))
    np.testing.assert_array_equal(a.negative, b.negative)
    np.testing.assert_array_equal(a.positive, b.positive)


def test_stage_barrier_and_progress():
    calls = []
    generate_forms(lopsided_marks(), small_config(band_rows=5), progress=lambda *c: calls.append(c))
    assert calls == [
        ("negative", 5, 15),
        ("negative", 10, 15),
        ("negative", 15, 15),
        ("positive", 5, 15),
        ("positive", 10, 15),
        ("positive", 15, 15),
    ]


def test_positive_form_stays_in_range_on_real_looking_input():
    forms = generate_forms(lopsided_marks(), small_config())
    assert forms.positive.shape == forms.negative.shape == (15, 20)
    assert forms.negative[5, 3] == 0
    assert forms.positive[5, 3] < MAX_SAMPLE
    # nothing within the sheet radius is punched here, so the die sits at full depth
    assert forms.positive[0, 19] == MAX_SAMPLE


def test_default_orientation_mirrors_negative_only():
    cfg = small_config()
    forms = generate_forms(lopsided_marks(), cfg)
    negative, positive = forms.oriented(cfg)
    np.testing.assert_array_equal(negative, forms.negative[:, ::-1])
    np.testing.assert_array_equal(positive, forms.positive)


def test_orientation_flags():
    cfg = small_config(mirror_negative=False, invert_positive=True)
    forms = generate_forms(lopsided_marks(), cfg)
    negative, positive = forms.oriented(cfg)
    np.testing.assert_array_equal(negative, forms.negative)
    np.testing.assert_array_equal(positive, MAX_SAMPLE - forms.positive)


@pytest.mark.parametrize(
    "kw",
    [
        {"punch_out_depth_mm": 0.0},
        {"sheet_thickness_mm": float("nan")},
        {"fade_distance_mm": -4.5},
        {"pixels_per_mm": float("inf")},
        {"workers": 0},
        {"band_rows": 0},
    ],
)
def test_invalid_config(kw):
    with pytest.raises(ConfigError):
        generate_forms(lopsided_marks(), small_config(**kw))


def test_config_derived_values():
    cfg = FormConfig()
    assert cfg.fade_radius_px == pytest.approx(45.0)
    assert cfg.sheet_radius_px == pytest.approx(7.0)
    assert cfg.dpi == pytest.approx(254.0)
    assert cfg.validate() is cfg


@pytest.mark.parametrize("kw", [{"workers": 2.5}, {"band_rows": "8"}, {"workers": True}])
def test_execution_settings_must_be_whole_numbers(kw):
    with pytest.raises(ConfigError):
        small_config(**kw).validate()


def test_validate_stores_coerced_values():
    cfg = small_config(punch_out_depth_mm=2, pixels_per_mm="10", workers=np.int64(3)).validate()
    assert isinstance(cfg.punch_out_depth_mm, float)
    assert cfg.pixels_per_mm == 10.0
    assert type(cfg.workers) is int and cfg.workers == 3


def test_row_bands_rejects_empty_bands():
    with pytest.raises(ConfigError):
        row_bands(10, 0)
