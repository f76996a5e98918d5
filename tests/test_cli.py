import pytest

from wordsolver import main
from wordsolver.errors import ServiceUnavailable
from wordsolver.solver.channel import ProcessChannel


def test_main_prints_words(data_dir, word_lists, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["letr", "--category", "general", "--min-len", "3", "--data-dir", str(data_dir)])
    assert exc_info.value.code == 0
    captured = capsys.readouterr()
    assert captured.out.splitlines() == ["let", "rel"]
    assert "2 words found for en/general" in captured.err


def test_main_reports_missing_dictionary(data_dir, word_lists, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["letr", "--lang", "fr", "--data-dir", str(data_dir)])
    assert exc_info.value.code == 1
    assert "No word list for fr/general" in capsys.readouterr().err


def test_main_reports_worker_start_failure(data_dir, word_lists, capsys, monkeypatch):
    def fail_start(self):
        raise ServiceUnavailable("cannot start")

    monkeypatch.setattr(ProcessChannel, "start", fail_start)
    with pytest.raises(SystemExit) as exc_info:
        main(["letr", "--data-dir", str(data_dir)])
    assert exc_info.value.code == 1
    assert "Solver failed (ServiceUnavailable): cannot start" in capsys.readouterr().err
