import json

from typer.testing import CliRunner

from strongs_graph.cli import app
from strongs_graph.workflows.models import FetchError
from strongs_graph.workflows.web_fetch import Fetcher

runner = CliRunner()

PAGE = """
<html><body>
<p><strong>Original Word:</strong> ζάω</p>
<p><strong>Transliteration:</strong> zaó</p>
<p><strong>Definition:</strong> to live</p>
</body></html>
"""


def test_normalize_prints_id():
    result = runner.invoke(app, ["normalize", "https://biblehub.com/strongs/hebrew/1623.htm"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "H1623"


def test_normalize_bare_number_uses_lang():
    result = runner.invoke(app, ["normalize", "1623", "--lang", "hebrew"])
    assert result.stdout.strip() == "H1623"


def test_bad_seed_exits_2(tmp_path):
    result = runner.invoke(app, ["crawl", "nonsense", "--vault", str(tmp_path)])
    assert result.exit_code == 2


def test_crawl_json_summary(tmp_path, monkeypatch):
    async def fake_fetch_once(self, url):
        return PAGE

    monkeypatch.setattr(Fetcher, "_fetch_once", fake_fetch_once)
    result = runner.invoke(
        app,
        ["crawl", "G2198", "--vault", str(tmp_path), "--max-depth", "0", "--rate-limit-ms", "0", "--json"],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["seed"] == "G2198"
    assert payload["created"] == 1
    assert payload["processed"] == ["G2198"]
    assert (tmp_path / "Lexicon" / "Strongs" / "G2198 — ζάω (zaó).md").exists()


def test_crawl_node_errors_exit_1_unless_soft_fail(tmp_path, monkeypatch):
    async def failing_fetch_once(self, url):
        raise FetchError(url, "GET failed", status=503)

    monkeypatch.setattr(Fetcher, "_fetch_once", failing_fetch_once)
    args = ["crawl", "G1", "--vault", str(tmp_path), "--rate-limit-ms", "0"]

    failed = runner.invoke(app, args)
    assert failed.exit_code == 1
    assert "G1: GET failed" in failed.stdout

    soft = runner.invoke(app, args + ["--soft-fail"])
    assert soft.exit_code == 0


def test_doctor_reports_vault(tmp_path):
    result = runner.invoke(app, ["doctor", "--vault", str(tmp_path)])
    assert "vault: ok" in result.stdout
    assert result.exit_code == 0
