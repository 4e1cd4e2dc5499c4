from __future__ import annotations

import json
from pathlib import Path

import pytest

from resmerge.__version__ import __version__
from resmerge.cli import DEFAULT_BASE_OUTPUT, DEFAULT_OUTPUT, main, resolve_output_name


def test_merge_run(tmp_path: Path, sample_inputs, collection_reader, capsys) -> None:
    out = tmp_path / "merged.cnl"
    code = main([*map(str, sample_inputs), "-o", str(out)])

    assert code == 0
    assert f"2 CNL files merged into {out}" in capsys.readouterr().out
    assert collection_reader(out) == ((3, 6), [[1, 2], [3, 4], [5, 6]])


def test_extract_run(tmp_path: Path, sample_inputs, collection_reader, capsys) -> None:
    out = tmp_path / "base.cnl"
    code = main([*map(str, sample_inputs), "-e", "-o", str(out)])

    assert code == 0
    assert "The node base of 2 CNL files extracted into" in capsys.readouterr().out
    assert collection_reader(out) == ((1, 6), [[1, 2, 3, 4, 5, 6]])


def test_default_names_for_input_directory(
    tmp_path: Path, sample_inputs, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["inp"]) == 0
    assert (tmp_path / "inp.cnl").is_file()
    assert main(["inp/", "--extract-base"]) == 0
    assert (tmp_path / "inp_base.cnl").is_file()


def test_resolve_output_name(tmp_path: Path) -> None:
    (tmp_path / "levels").mkdir()
    levels = str(tmp_path / "levels")
    assert resolve_output_name([levels], "x.cnl", extract=False) == "x.cnl"
    assert resolve_output_name([levels], None, extract=False) == levels + ".cnl"
    assert resolve_output_name([levels + "/"], None, extract=True) == levels + "_base.cnl"
    assert resolve_output_name([levels, levels], None, extract=False) == DEFAULT_OUTPUT
    assert resolve_output_name(["a.cnl"], None, extract=True) == DEFAULT_BASE_OUTPUT
    assert resolve_output_name(["."], None, extract=False) == DEFAULT_OUTPUT


def test_existing_output_requires_rewrite(tmp_path: Path, sample_inputs, capsys) -> None:
    out = tmp_path / "merged.cnl"
    out.write_bytes(b"stale\n")
    args = [*map(str, sample_inputs), "-o", str(out)]

    assert main(args) == 1
    assert "already exists" in capsys.readouterr().err
    assert out.read_bytes() == b"stale\n"

    assert main([*args, "--rewrite"]) == 0
    assert out.read_bytes().endswith(b"1 2\n3 4\n5 6\n")


def test_missing_inputs_fail(tmp_path: Path, capsys) -> None:
    code = main([str(tmp_path / "absent.cnl"), "-o", str(tmp_path / "out.cnl")])
    assert code == 1
    assert "ERROR: The input data does not exist" in capsys.readouterr().err
    assert not (tmp_path / "out.cnl").exists()


def test_missing_sync_base_fails(tmp_path: Path, sample_inputs, capsys) -> None:
    out = tmp_path / "out.cnl"
    code = main([*map(str, sample_inputs), "-s", str(tmp_path / "absent.cnl"), "-o", str(out)])
    assert code == 1
    assert "The node base" in capsys.readouterr().err
    assert not out.exists()


def test_sync_base_run(tmp_path: Path, sample_inputs, cnl_writer, collection_reader) -> None:
    base = cnl_writer(tmp_path / "base.cnl", "1 2 5\n")
    out = tmp_path / "out.cnl"
    code = main([*map(str, sample_inputs), "-s", str(base), "-b", "2", "-o", str(out)])
    assert code == 0
    assert collection_reader(out) == ((1, 3), [[1, 2]])


def test_invalid_membership(tmp_path: Path, sample_inputs, capsys) -> None:
    code = main([*map(str, sample_inputs), "-m", "0", "-o", str(tmp_path / "out.cnl")])
    assert code == 1
    assert "Membership should be positive" in capsys.readouterr().err


def test_config_file_settings(
    tmp_path: Path, sample_inputs, collection_reader
) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("merge:\n  btm_size: 3\nlogging:\n  format: json\n", encoding="utf-8")
    out = tmp_path / "out.cnl"

    assert main([*map(str, sample_inputs), "--config", str(config), "-o", str(out)]) == 0
    assert collection_reader(out) == ((0, 0), [])


def test_invalid_config_file(tmp_path: Path, sample_inputs, capsys) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("merge:\n  top_size: -2\n", encoding="utf-8")
    code = main([*map(str, sample_inputs), "--config", str(config)])
    assert code == 1
    assert "Schema validation failed" in capsys.readouterr().err


def test_summary_report(tmp_path: Path, sample_inputs) -> None:
    out = tmp_path / "out.cnl"
    summary = tmp_path / "reports" / "summary.json"
    args = [*map(str, sample_inputs), "-o", str(out), "--strict-dedup", "--summary", str(summary)]
    assert main(args) == 0

    payload = json.loads(summary.read_text(encoding="utf-8"))
    assert payload["status"] == "ok"
    assert payload["version"] == __version__
    assert payload["mode"] == "merge"
    assert payload["settings"]["strict_dedup"] is True
    assert payload["value"]["clusters"] == 3
    assert payload["value"]["nodes"] == 6
    assert len(payload["value"]["inputs"]) == 2


def test_cli_help(run_resmerge) -> None:
    proc = run_resmerge(["--help"])
    assert proc.returncode == 0
    assert "--extract-base" in proc.stdout
    assert "--sync-base" in proc.stdout


def test_cli_version(run_resmerge) -> None:
    proc = run_resmerge(["--version"])
    assert proc.returncode == 0
    assert __version__ in proc.stdout


def test_cli_subprocess_merge(tmp_path: Path, sample_inputs, run_resmerge) -> None:
    out = tmp_path / "merged.cnl"
    proc = run_resmerge(
        [*map(str, sample_inputs), "-o", str(out), "--log-level", "DEBUG", "--log-format", "json"]
    )
    assert proc.returncode == 0, proc.stderr
    assert "2 CNL files merged into" in proc.stdout
    records = [json.loads(line) for line in proc.stderr.splitlines() if line.startswith("{")]
    assert any(r["message"].startswith("Collections merged") for r in records)
    assert any(r.get("input", "").endswith("b.cnl") for r in records)
