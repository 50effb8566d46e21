"""Tests for the wedding-import command line entry point."""

from wedding_rsvp import cli
from wedding_rsvp.core.errors import ImportRequestError
from wedding_rsvp.services.import_client import ImportSummary


class FakeClient:
    instances = []

    def __init__(self, base_url=None, batch_size=None, timeout=None):
        self.base_url = base_url
        self.batch_size = batch_size
        self.timeout = timeout
        self.calls = []
        FakeClient.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def upload_csv(self, text, on_progress=None):
        self.calls.append(("csv", text))
        on_progress(100)
        summary = ImportSummary(total_processed=3, total_households=1, chunks_sent=1)
        summary.results = [{"name": "Ada", "householdName": "Byron", "success": False, "error": "boom"}]
        return summary

    def import_text(self, text):
        self.calls.append(("text", text))
        return ImportSummary(total_processed=2, chunks_sent=1)


def test_uploads_csv_in_chunks(tmp_path, monkeypatch, capsys, smith_csv) -> None:
    FakeClient.instances = []
    monkeypatch.setattr(cli, "GuestImportClient", FakeClient)
    monkeypatch.setattr(cli, "setup_logging", lambda: None)
    path = tmp_path / "guests.csv"
    path.write_text(smith_csv)

    code = cli.main([str(path), "--url", "http://example.test", "--batch-size", "5"])

    assert code == 0
    [client] = FakeClient.instances
    assert client.base_url == "http://example.test"
    assert client.batch_size == 5
    assert client.calls == [("csv", smith_csv)]
    out = capsys.readouterr().out
    assert "Created 3 guests across 1 new households" in out
    assert "Ada (Byron): boom" in out


def test_paste_mode_sends_single_batch(tmp_path, monkeypatch) -> None:
    FakeClient.instances = []
    monkeypatch.setattr(cli, "GuestImportClient", FakeClient)
    monkeypatch.setattr(cli, "setup_logging", lambda: None)
    path = tmp_path / "pasted.txt"
    path.write_text("Name\tHousehold\nAda\tByron\n")

    assert cli.main([str(path), "--paste"]) == 0
    assert FakeClient.instances[0].calls[0][0] == "text"


def test_request_failure_exits_nonzero(tmp_path, monkeypatch, capsys) -> None:
    class FailingClient(FakeClient):
        def upload_csv(self, text, on_progress=None):
            raise ImportRequestError(500, "db down", chunk_index=0)

    monkeypatch.setattr(cli, "GuestImportClient", FailingClient)
    monkeypatch.setattr(cli, "setup_logging", lambda: None)
    path = tmp_path / "guests.csv"
    path.write_text("Name,Household\nAda,Byron\n")

    assert cli.main([str(path)]) == 1
    assert "db down" in capsys.readouterr().err


def test_missing_file_exits_nonzero(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(cli, "setup_logging", lambda: None)

    assert cli.main([str(tmp_path / "missing.csv")]) == 1
