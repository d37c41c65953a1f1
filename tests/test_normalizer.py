"""Tests for renaming generated slide images."""

import pytest

from marpimg_backend.errors import NoImagesProducedError
from marpimg_backend.normalizer import collect_generated_images, natural_key, normalize_output, slide_name


def _touch(path, data=b"png"):
    path.write_bytes(data)
    return path


class TestSlideName:
    def test_three_digits_minimum(self):
        assert slide_name(1, 3) == "slide-001.png"
        assert slide_name(42, 999) == "slide-042.png"

    def test_widens_for_large_decks(self):
        assert slide_name(5, 1000) == "slide-0005.png"

    def test_names_sort_in_slide_order(self):
        names = [slide_name(i, 1200) for i in range(1, 1201)]
        assert sorted(names) == names


def test_natural_key_orders_numbers_numerically():
    names = ["slide.10.png", "slide.9.png", "slide.1000.png", "slide.100.png"]
    assert sorted(names, key=natural_key) == ["slide.9.png", "slide.10.png", "slide.100.png", "slide.1000.png"]


class TestCollectGeneratedImages:
    def test_skips_archive_dirs_hidden_and_other_files(self, tmp_path):
        _touch(tmp_path / "slide.001.png")
        _touch(tmp_path / "slide.002.PNG")
        _touch(tmp_path / "presentation.zip")
        _touch(tmp_path / "presentation.zip.part")
        _touch(tmp_path / ".hidden.png")
        _touch(tmp_path / "render.log")
        (tmp_path / "assets.png").mkdir()

        found = collect_generated_images(tmp_path)
        assert [p.name for p in found] == ["slide.001.png", "slide.002.PNG"]

    def test_empty_directory(self, tmp_path):
        assert collect_generated_images(tmp_path) == []


class TestNormalizeOutput:
    def test_renames_in_slide_order(self, tmp_path):
        for i in (1, 2, 10, 11, 3):
            _touch(tmp_path / f"slide.{i}.png", f"slide {i}".encode())

        result = normalize_output(tmp_path)

        assert [p.name for p in result] == [f"slide-00{i}.png" for i in range(1, 6)]
        assert [p.read_bytes() for p in result] == [b"slide 1", b"slide 2", b"slide 3", b"slide 10", b"slide 11"]
        assert sorted(p.name for p in tmp_path.iterdir()) == [p.name for p in result]

    def test_existing_target_names_are_not_overwritten(self, tmp_path):
        _touch(tmp_path / "a.png", b"first")
        _touch(tmp_path / "slide-001.png", b"second")

        result = normalize_output(tmp_path)

        assert [p.read_bytes() for p in result] == [b"first", b"second"]
        assert [p.name for p in result] == ["slide-001.png", "slide-002.png"]

    def test_archive_is_left_alone(self, tmp_path):
        _touch(tmp_path / "slide.001.png")
        _touch(tmp_path / "presentation.zip", b"zip")

        normalize_output(tmp_path)

        assert (tmp_path / "presentation.zip").read_bytes() == b"zip"

    def test_no_images_is_an_error(self, tmp_path):
        _touch(tmp_path / "render.log")
        with pytest.raises(NoImagesProducedError) as exc_info:
            normalize_output(tmp_path)
        assert exc_info.value.status_code == 422
