import io
import os
import time
import zipfile
from pathlib import Path

import pytest

from app.services.archive_packager import ARCHIVE_NAME_PATTERN, PortfolioArchiveStore, pack, write_archive
from app.services.errors import ArchiveWriteError, DownloadFileNotFound

TREE = {
    "package.json": '{"name": "jane-doe-portfolio"}\n',
    "src/App.tsx": "export default function App() { return null; }\n",
    "src/data/portfolio-data.ts": "export const portfolioData = {\"name\": \"Zoë\"};\n",
    "public/logo.bin": bytes(range(256)),
}


def _expected_bytes(content) -> bytes:
    return content if isinstance(content, bytes) else content.encode("utf-8")


def test_pack_reproduces_every_entry(tmp_path: Path) -> None:
    output = pack(TREE, tmp_path / "out" / "portfolio.zip")

    assert output.is_file()
    assert not output.with_name("portfolio.zip.part").exists()
    with zipfile.ZipFile(output) as archive:
        assert sorted(archive.namelist()) == sorted(TREE)
        for path, content in TREE.items():
            assert archive.read(path) == _expected_bytes(content)
            assert archive.getinfo(path).compress_type == zipfile.ZIP_DEFLATED


def test_write_archive_to_stream() -> None:
    buffer = io.BytesIO()
    write_archive(TREE, buffer)
    with zipfile.ZipFile(io.BytesIO(buffer.getvalue())) as archive:
        assert archive.read("src/App.tsx") == _expected_bytes(TREE["src/App.tsx"])


def test_pack_failure_leaves_no_partial_file(tmp_path: Path) -> None:
    with pytest.raises(ArchiveWriteError):
        pack({"bad.txt": 12345}, tmp_path / "portfolio.zip")
    assert list(tmp_path.iterdir()) == []


def test_create_resolve_claim_discard(tmp_path: Path) -> None:
    store = PortfolioArchiveStore(tmp_path)
    name, path = store.create(TREE)

    assert ARCHIVE_NAME_PATTERN.match(name)
    assert store.resolve(name) == path

    delivering = store.claim(name)
    assert delivering.is_file()
    with pytest.raises(DownloadFileNotFound):
        store.claim(name)

    store.discard(delivering)
    assert not delivering.exists()
    store.discard(delivering)


@pytest.mark.parametrize("name", ["../secret.zip", "portfolio-1-abc.zip.part", "notes.txt", ""])
def test_resolve_rejects_foreign_names(tmp_path: Path, name: str) -> None:
    with pytest.raises(DownloadFileNotFound):
        PortfolioArchiveStore(tmp_path).resolve(name)


def test_sweep_expired(tmp_path: Path) -> None:
    store = PortfolioArchiveStore(tmp_path)
    old_name, old_path = store.create(TREE)
    fresh_name, fresh_path = store.create(TREE)
    unrelated = tmp_path / "keep.txt"
    unrelated.write_text("keep")

    two_days_ago = time.time() - 48 * 3600
    os.utime(old_path, (two_days_ago, two_days_ago))
    os.utime(unrelated, (two_days_ago, two_days_ago))

    assert store.sweep_expired(24 * 3600) == 1
    assert not old_path.exists()
    assert fresh_path.exists()
    assert unrelated.exists()


def test_sweep_missing_directory(tmp_path: Path) -> None:
    assert PortfolioArchiveStore(tmp_path / "absent").sweep_expired(0) == 0
