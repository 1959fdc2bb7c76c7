import os
import stat

import pytest
from PIL import Image

from member_poster import (
    DecodeError,
    EncodeOrWriteError,
    InputValidationError,
    PersonInfo,
    PosterAssembler,
    PosterError,
    PosterRequest,
    plan_geometry,
)
from member_poster.__main__ import main


@pytest.fixture
def assembler(fonts, settings):
    return PosterAssembler(fonts, settings)


def test_poster_dimensions(assembler, template_path, person, logo_path, output_dir):
    out = assembler.assemble_to_file(template_path, person, logo_path, output_dir / "poster.jpeg")

    geometry = plan_geometry(800)
    with Image.open(out) as poster:
        assert poster.format == "JPEG"
        # 1000x500 template resized to 800x400
        assert poster.size == (800, 400 + geometry.footer_height)


def test_footer_band_layout(assembler, template_path, person, logo_path):
    poster = assembler.compose(template_path, person, logo_path)
    geometry = plan_geometry(800)
    band_top = 400

    # Footer background left of the photo
    assert poster.getpixel((5, band_top + 5)) == (240, 247, 255)
    # Photo center is opaque photo content, not background
    center = (geometry.photo_left + geometry.photo_size // 2, band_top + geometry.footer_height // 2)
    assert poster.getpixel(center) != (240, 247, 255)
    # Photo corner outside the circle shows the band
    corner = (geometry.photo_left + 1, band_top + geometry.centered_top(geometry.photo_size) + 1)
    assert poster.getpixel(corner) == (240, 247, 255)


def test_accepts_bytes_inputs(assembler, template_path, photo_path, logo_path):
    person = PersonInfo(name="Ravi", designation="Partner", phone="1", photo=photo_path.read_bytes())
    data = assembler.assemble(template_path.read_bytes(), person, logo_path.read_bytes())
    assert data[:2] == b"\xff\xd8"


def test_identical_inputs_identical_pixels(assembler, template_path, person, logo_path, output_dir):
    first = assembler.assemble_to_file(template_path, person, logo_path, output_dir / "a.jpeg")
    second = assembler.assemble_to_file(template_path, person, logo_path, output_dir / "b.jpeg")
    with Image.open(first) as a, Image.open(second) as b:
        assert a.tobytes() == b.tobytes()


def test_team_member_without_designation(assembler, template_path, photo_path, logo_path):
    person = PersonInfo(name="Ravi", team_name="Alpha Squad", photo=str(photo_path))
    assert assembler.assemble(template_path, person, logo_path)


def test_very_long_text_still_fits_canvas(assembler, template_path, photo_path, logo_path):
    person = PersonInfo(name="N" * 300, designation="D" * 300, phone="9" * 100, photo=str(photo_path))
    poster = assembler.compose(template_path, person, logo_path)
    assert poster.width == 800


@pytest.mark.parametrize("field, overrides", [
    ("name", {"name": "  "}),
    ("photo", {"photo": None}),
    ("photo", {"photo": ""}),
    ("designation", {"designation": "", "team_name": None}),
])
def test_missing_required_field(assembler, template_path, logo_path, person, output_dir, field, overrides):
    broken = person.model_copy(update=overrides)
    target = output_dir / "poster.jpeg"
    with pytest.raises(InputValidationError) as exc:
        assembler.assemble_to_file(template_path, broken, logo_path, target)
    assert exc.value.field == field
    assert field in str(exc.value)
    assert not target.exists()


def test_photo_path_missing(assembler, template_path, logo_path, person, tmp_path):
    broken = person.model_copy(update={"photo": str(tmp_path / "gone.jpg")})
    with pytest.raises(InputValidationError) as exc:
        assembler.assemble(template_path, broken, logo_path)
    assert exc.value.field == "photo"


def test_template_path_missing(assembler, person, logo_path, tmp_path):
    with pytest.raises(InputValidationError) as exc:
        assembler.assemble(tmp_path / "nope.png", person, logo_path)
    assert exc.value.field == "template"


def test_corrupt_logo_leaves_no_output(assembler, template_path, person, tmp_path, output_dir):
    bad_logo = tmp_path / "logo.png"
    bad_logo.write_bytes(b"not a png")
    target = output_dir / "poster.jpeg"
    with pytest.raises(DecodeError) as exc:
        assembler.assemble_to_file(template_path, person, bad_logo, target)
    assert exc.value.stage == "logo_decode"
    assert not target.exists()


def test_corrupt_template(assembler, person, logo_path):
    with pytest.raises(DecodeError) as exc:
        assembler.assemble(b"\x89PNG broken", person, logo_path)
    assert exc.value.asset == "template"


def test_unwritable_destination(assembler, template_path, person, logo_path, tmp_path):
    target = tmp_path / "missing-dir" / "poster.jpeg"
    with pytest.raises(EncodeOrWriteError) as exc:
        assembler.assemble_to_file(template_path, person, logo_path, target)
    assert exc.value.stage == "encode_write"
    assert not target.exists()


def test_no_temp_files_left(assembler, template_path, person, logo_path, output_dir):
    assembler.assemble_to_file(template_path, person, logo_path, output_dir / "poster.jpeg")
    assert [p.name for p in output_dir.iterdir()] == ["poster.jpeg"]


@pytest.mark.asyncio
async def test_batch_continues_past_failures(assembler, template_path, person, logo_path, output_dir):
    bad = person.model_copy(update={"photo": str(output_dir / "missing.jpg")})
    requests = [
        PosterRequest(template_path, person, logo_path, output_dir / "one.jpeg"),
        PosterRequest(template_path, bad, logo_path, output_dir / "two.jpeg"),
        PosterRequest(template_path, person, logo_path, output_dir / "three.jpeg"),
    ]

    results = await assembler.assemble_batch(requests, max_concurrency=2)

    assert [r.ok for r in results] == [True, False, True]
    assert results[0].output_path.exists()
    assert isinstance(results[1].error, InputValidationError)
    assert not (output_dir / "two.jpeg").exists()


@pytest.mark.asyncio
async def test_batch_requires_output_path(assembler, template_path, person, logo_path):
    results = await assembler.assemble_batch([PosterRequest(template_path, person, logo_path)])
    assert results[0].error.field == "output_path"


def test_oversized_template_is_decode_error(assembler, oversized_image_path, person, logo_path):
    with pytest.raises(DecodeError) as exc:
        assembler.assemble(oversized_image_path, person, logo_path)
    assert exc.value.asset == "template"


def test_written_poster_uses_default_file_mode(assembler, template_path, person, logo_path, output_dir):
    umask = os.umask(0)
    os.umask(umask)
    path = assembler.assemble_to_file(template_path, person, logo_path, output_dir / "poster.jpeg")
    assert stat.S_IMODE(path.stat().st_mode) == 0o666 & ~umask


@pytest.mark.asyncio
async def test_batch_survives_oversized_image(assembler, template_path, oversized_image_path, person, logo_path, output_dir):
    requests = [
        PosterRequest(template_path, person, logo_path, output_dir / "good.jpeg"),
        PosterRequest(oversized_image_path, person, logo_path, output_dir / "bomb.jpeg"),
    ]

    results = await assembler.assemble_batch(requests)

    assert [r.ok for r in results] == [True, False]
    assert (output_dir / "good.jpeg").exists()
    assert isinstance(results[1].error, DecodeError)
    assert not (output_dir / "bomb.jpeg").exists()


@pytest.mark.asyncio
async def test_batch_reports_unexpected_errors(assembler, template_path, person, logo_path, output_dir, monkeypatch):
    original_compose = assembler.compose

    def compose(template, member, logo):
        if member.name == "Broken":
            raise RuntimeError("renderer exploded")
        return original_compose(template, member, logo)

    monkeypatch.setattr(assembler, "compose", compose)
    broken = person.model_copy(update={"name": "Broken"})
    requests = [
        PosterRequest(template_path, broken, logo_path, output_dir / "broken.jpeg"),
        PosterRequest(template_path, person, logo_path, output_dir / "fine.jpeg"),
    ]

    results = await assembler.assemble_batch(requests)

    assert [r.ok for r in results] == [False, True]
    assert isinstance(results[0].error, PosterError)
    assert results[0].error.code == "UNEXPECTED_ERROR"
    assert results[0].error.details == {"type": "RuntimeError"}
    assert not (output_dir / "broken.jpeg").exists()


def test_cli(monkeypatch, font_paths, template_path, photo_path, logo_path, output_dir, capsys):
    monkeypatch.setenv("POSTER_BOLD_FONT_PATH", font_paths["bold"])
    monkeypatch.setenv("POSTER_ITALIC_FONT_PATH", font_paths["italic"])
    monkeypatch.setenv("POSTER_SYMBOL_FONT_PATHS", f'["{font_paths["symbols"][0]}"]')
    target = output_dir / "cli.jpeg"

    code = main([
        "--template", str(template_path),
        "--photo", str(photo_path),
        "--logo", str(logo_path),
        "--name", "Priya Sharma",
        "--designation", "Health insurance advisor",
        "--phone", "9876543210",
        "--output", str(target),
    ])

    assert code == 0
    assert target.exists()
    assert str(target) in capsys.readouterr().out


def test_cli_reports_font_error(monkeypatch, tmp_path, template_path, photo_path, logo_path):
    monkeypatch.setenv("POSTER_BOLD_FONT_PATH", str(tmp_path / "none.ttf"))
    code = main([
        "--template", str(template_path),
        "--photo", str(photo_path),
        "--logo", str(logo_path),
        "--name", "X",
        "--designation", "Partner",
        "--output", str(tmp_path / "x.jpeg"),
    ])
    assert code == 1
