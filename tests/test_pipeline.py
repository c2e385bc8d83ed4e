"""流水线集成测试：两轮遍历、体积比较、透传与原地替换。"""

from __future__ import annotations

import asyncio
import io
import json
import shutil
from pathlib import Path

import aiofiles.os
import pytest
from PIL import Image

from asset_optimizer.core.exceptions import InputFolderError, InvalidConfigurationError
from asset_optimizer.core.models import OptimizeResult
from asset_optimizer.processing import worker
from asset_optimizer.processing.pipeline import configure, optimize_directory


def run(input_path: Path | str, output_path: Path | str, **options: object) -> OptimizeResult:
    return asyncio.run(configure(str(input_path), str(output_path), **options))


def make_dirs(tmp_path: Path) -> tuple[Path, Path]:
    source = tmp_path / "input"
    output = tmp_path / "output"
    source.mkdir()
    return source, output


def write_pretty_json(path: Path) -> bytes:
    payload = {"name": "asset", "tags": ["a", "b", "c"], "nested": {"enabled": True, "count": 3}}
    content = json.dumps(payload, indent=4).encode("utf-8")
    path.write_bytes(content)
    return content


def uncompressed_png(size: tuple[int, int] = (64, 64), color: str = "blue") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG", compress_level=0)
    return buffer.getvalue()


def test_json_is_minified_and_unknown_file_copied(tmp_path: Path) -> None:
    source, output = make_dirs(tmp_path)
    original_json = write_pretty_json(source / "data.json")
    (source / "notes.xyz").write_bytes(b"plain text that nobody optimizes\n")

    result = run(source, output)

    assert result.files_scanned == 2
    assert result.files_processed == 1
    assert result.files_optimized == 1
    assert result.warnings == ()

    minified = (output / "data.json").read_bytes()
    assert len(minified) < len(original_json)
    assert json.loads(minified) == json.loads(original_json)
    assert (output / "notes.xyz").read_bytes() == (source / "notes.xyz").read_bytes()

    assert result.total_original_size == len(original_json)
    assert result.total_optimized_size == len(minified)
    assert result.total_savings == len(original_json) - len(minified)
    assert result.input_directory == source
    assert result.output_directory == output


def test_malformed_json_falls_back_to_original(tmp_path: Path) -> None:
    source, output = make_dirs(tmp_path)
    (source / "broken.json").write_bytes(b"{bad")
    received: list[str] = []

    result = run(source, output, on_warning=received.append)

    assert (output / "broken.json").read_bytes() == b"{bad"
    assert result.files_processed == 1
    assert result.files_optimized == 0
    assert len(result.warnings) == 1
    assert "broken.json" in result.warnings[0]
    assert result.warnings[0].startswith("[asset-optimizer] Failed to minify JSON file")
    assert received == list(result.warnings)


def test_nested_directories_keep_structure(tmp_path: Path) -> None:
    source, output = make_dirs(tmp_path)
    (source / "a" / "b").mkdir(parents=True)
    write_pretty_json(source / "a" / "b" / "deep.json")
    (source / "a" / "raw.bin").write_bytes(b"\x00\x01\x02")
    (source / "README").write_bytes(b"no extension")

    result = run(source, output)

    assert result.files_scanned == 3
    assert result.files_processed == 1
    assert (output / "a" / "b" / "deep.json").exists()
    assert (output / "a" / "raw.bin").read_bytes() == b"\x00\x01\x02"
    assert (output / "README").read_bytes() == b"no extension"


def test_png_is_recompressed(tmp_path: Path) -> None:
    source, output = make_dirs(tmp_path)
    original = uncompressed_png()
    (source / "image.png").write_bytes(original)

    result = run(source, output, image_quality=60)

    optimized = (output / "image.png").read_bytes()
    assert len(optimized) < len(original)
    assert result.files_optimized == 1
    with Image.open(output / "image.png") as img:
        assert img.format == "PNG"
        assert img.size == (64, 64)


def test_larger_candidate_is_discarded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source, output = make_dirs(tmp_path)
    original = uncompressed_png()
    (source / "image.png").write_bytes(original)

    monkeypatch.setattr(worker, "compress_image", lambda data, fmt, quality, warn: data + b"padding")

    result = run(source, output)

    assert (output / "image.png").read_bytes() == original
    assert result.files_processed == 1
    assert result.files_optimized == 0
    assert result.total_original_size == result.total_optimized_size == len(original)


def test_equal_size_candidate_is_not_counted(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source, output = make_dirs(tmp_path)
    original = uncompressed_png()
    (source / "image.png").write_bytes(original)

    monkeypatch.setattr(worker, "compress_image", lambda data, fmt, quality, warn: b"x" * len(data))

    result = run(source, output)

    assert (output / "image.png").read_bytes() == original
    assert result.files_optimized == 0
    assert result.total_savings == 0


def test_existing_outputs_are_replaced(tmp_path: Path) -> None:
    source, output = make_dirs(tmp_path)
    (source / "keep.txt").write_bytes(b"fresh")
    write_pretty_json(source / "data.json")
    output.mkdir()
    (output / "keep.txt").write_bytes(b"stale content from an earlier run")
    (output / "data.json").write_bytes(b"stale")
    (output / "unrelated.txt").write_bytes(b"not part of the input")

    run(source, output)

    assert (output / "keep.txt").read_bytes() == b"fresh"
    assert json.loads((output / "data.json").read_bytes())["name"] == "asset"
    # 只清理与当前输入对应的路径
    assert (output / "unrelated.txt").exists()


def test_cleanup_removes_every_scanned_path_before_processing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source, output = make_dirs(tmp_path)
    (source / "sub").mkdir()
    (source / "sub" / "one.txt").write_bytes(b"1")
    (source / "two.json").write_bytes(b"[1, 2]")
    removed: list[Path] = []
    real_remove = aiofiles.os.remove

    async def spy_remove(path: Path) -> None:
        removed.append(Path(path))
        await real_remove(path)

    monkeypatch.setattr(aiofiles.os, "remove", spy_remove)

    run(source, output)

    assert sorted(removed) == sorted([output / "sub" / "one.txt", output / "two.json"])


def test_self_replace_never_deletes_or_copies(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = tmp_path / "assets"
    source.mkdir()
    original_png = uncompressed_png()
    (source / "image.png").write_bytes(original_png)
    (source / "blob.bin").write_bytes(b"\x10\x20\x30")

    removed: list[object] = []
    copied: list[object] = []

    async def spy_remove(path: object) -> None:
        removed.append(path)

    def spy_copy(src: object, dst: object) -> None:
        copied.append((src, dst))

    monkeypatch.setattr(aiofiles.os, "remove", spy_remove)
    monkeypatch.setattr(shutil, "copyfile", spy_copy)

    result = run(source, source)

    assert removed == []
    assert copied == []
    assert (source / "blob.bin").read_bytes() == b"\x10\x20\x30"
    assert len((source / "image.png").read_bytes()) < len(original_png)
    assert result.files_scanned == 2
    assert result.files_processed == 1
    assert result.files_optimized == 1


def test_self_replace_keeps_file_when_not_improved(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = tmp_path / "assets"
    source.mkdir()
    original_png = uncompressed_png()
    (source / "image.png").write_bytes(original_png)
    before = (source / "image.png").stat().st_mtime_ns

    monkeypatch.setattr(worker, "compress_image", lambda data, fmt, quality, warn: data)

    result = run(source, source)

    assert (source / "image.png").read_bytes() == original_png
    assert (source / "image.png").stat().st_mtime_ns == before
    assert result.files_optimized == 0


def test_self_replace_detected_from_relative_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "assets"
    source.mkdir()
    (source / "blob.bin").write_bytes(b"data")

    result = run("assets", str(source))

    assert result.input == "assets"
    assert result.input_directory == result.output_directory
    assert sorted(p.name for p in source.iterdir()) == ["blob.bin"]


def test_runs_are_isolated(tmp_path: Path) -> None:
    source, output = make_dirs(tmp_path)
    (source / "broken.json").write_bytes(b"{bad")
    write_pretty_json(source / "good.json")

    first = run(source, output)
    (source / "broken.json").write_bytes(b'{"fixed": true}')
    second = run(source, output)

    assert first.files_scanned == second.files_scanned == 2
    assert first.files_processed == second.files_processed == 2
    assert len(first.warnings) == 1
    assert second.warnings == ()


def test_concurrent_runs_do_not_share_state(tmp_path: Path) -> None:
    first_source = tmp_path / "first"
    second_source = tmp_path / "second"
    first_source.mkdir()
    second_source.mkdir()
    write_pretty_json(first_source / "a.json")
    for index in range(3):
        write_pretty_json(second_source / f"b{index}.json")

    async def both() -> list[OptimizeResult]:
        return await asyncio.gather(
            configure(str(first_source), str(tmp_path / "out1")),
            configure(str(second_source), str(tmp_path / "out2")),
        )

    first, second = asyncio.run(both())

    assert first.files_scanned == 1
    assert second.files_scanned == 3
    assert second.files_processed == 3


def test_processed_never_exceeds_scanned(tmp_path: Path) -> None:
    source, output = make_dirs(tmp_path)
    write_pretty_json(source / "a.json")
    (source / "b.svg").write_bytes(b'<svg xmlns="http://www.w3.org/2000/svg">  <!-- c -->  <g/>  </svg>')
    (source / "c.txt").write_bytes(b"text")

    result = run(source, output)

    assert result.files_processed == result.files_scanned - 1
    assert result.total_optimized_size <= result.total_original_size


def test_missing_arguments_raise(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfigurationError, match="An input folder must be provided"):
        run("", tmp_path)
    with pytest.raises(InvalidConfigurationError, match="An output folder must be provided"):
        run(tmp_path, "")


def test_invalid_input_folder_raises(tmp_path: Path) -> None:
    with pytest.raises(InputFolderError, match="does not exist"):
        run(tmp_path / "missing", tmp_path / "out")

    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(InputFolderError, match="not a directory"):
        run(not_a_dir, tmp_path / "out")


def test_empty_directory_produces_empty_result(tmp_path: Path) -> None:
    source, output = make_dirs(tmp_path)

    result = optimize_directory(str(source), str(output))

    assert result.files_scanned == 0
    assert result.files_processed == 0
    assert result.total_savings_percent == 0
    assert output.is_dir()
