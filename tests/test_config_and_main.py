from pathlib import Path

from textdigest import config


def test_bootstrap_runtime_dirs_creates_paths(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(config, "OUTPUTS_DIR", tmp_path / "output")
    config.bootstrap_runtime_dirs()
    assert (tmp_path / "output").exists()


def test_defaults_match_documented_values() -> None:
    assert config.BATCH_SIZE == 20
    assert config.MAX_CONCURRENT_BATCHES == 3
    assert config.GRAPH_MIN_DOCUMENTS == 50
    assert config.GRAPH_MIN_TOKENS == 20000
    assert config.COMMON_MIN_FREQUENCY == 3
    assert config.UNUSUAL_MIN_RARITY == 0.7
    assert config.LONG_MIN_WORDS == 50


def test_main_executes_offline(monkeypatch, tmp_path, capsys) -> None:
    folder = tmp_path / "notes"
    folder.mkdir()
    (folder / "doc.txt").write_text("simple corpus evidence for deterministic test", encoding="utf-8")
    out = tmp_path / "digest.md"

    monkeypatch.setenv("OFFLINE_MODE", "1")
    monkeypatch.setattr(config, "OUTPUTS_DIR", tmp_path / "output")

    import textdigest.main as main_mod

    code = main_mod.main(["--folder", str(folder), "--days", "1", "--output", str(out), "--offline"])

    assert code == 0
    assert Path(out).exists()
    printed = capsys.readouterr().out
    assert "Digest written to" in printed
    assert "coverage=100.0%" in printed


def test_main_reports_missing_input(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.setenv("OFFLINE_MODE", "1")
    monkeypatch.setattr(config, "OUTPUTS_DIR", tmp_path / "output")

    import textdigest.main as main_mod

    code = main_mod.main(["--folder", str(tmp_path), "--output", str(tmp_path / "d.md"), "--offline"])

    assert code == 1
    assert "No input" in capsys.readouterr().err


def test_main_reports_failed_stage(monkeypatch, tmp_path, capsys) -> None:
    folder = tmp_path / "notes"
    folder.mkdir()
    (folder / "doc.txt").write_text("text", encoding="utf-8")
    monkeypatch.setenv("OFFLINE_MODE", "0")
    monkeypatch.setenv("PRIMARY_PROVIDER", "gemini")
    monkeypatch.setenv("FALLBACK_PROVIDER", "")
    monkeypatch.setattr(config, "GOOGLE_API_KEY", "")
    monkeypatch.setattr(config, "OUTPUTS_DIR", tmp_path / "output")

    import textdigest.main as main_mod

    code = main_mod.main(["--folder", str(folder), "--output", str(tmp_path / "d.md")])

    assert code == 1
    err = capsys.readouterr().err
    assert "summarization" in err
    assert "GOOGLE_API_KEY" in err
