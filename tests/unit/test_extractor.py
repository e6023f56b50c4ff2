"""Unit tests for MinerU PDF extraction, driven by a fake MinerU script."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

from rag_playground.errors import ExtractionError
from rag_playground.ingestion.extractor import extract_pdf_text, find_first_text_file

FAKE_MINERU = textwrap.dedent(
    """\
    import os
    import sys
    import time

    args = sys.argv[1:]
    pdf = args[args.index("-p") + 1]
    out = args[args.index("-o") + 1]
    mode = os.environ.get("FAKE_MINERU_MODE", "ok")

    with open(os.path.join(os.path.dirname(pdf), "last_output_dir"), "w") as fh:
        fh.write(out)

    if mode == "fail":
        sys.stderr.write("layout model crashed")
        sys.exit(3)
    if mode == "hang":
        time.sleep(30)
    if mode == "empty":
        os.makedirs(os.path.join(out, "images"))
        sys.exit(0)
    if mode == "latin1":
        with open(os.path.join(out, "doc.md"), "wb") as fh:
            fh.write(b"caf\\xe9 menu")
        sys.exit(0)

    nested = os.path.join(out, "paper", "auto")
    os.makedirs(nested)
    with open(os.path.join(nested, "paper.md"), "w", encoding="utf-8") as fh:
        fh.write("# Extracted\\n\\nText from " + os.path.basename(pdf))
    """
)


@pytest.fixture()
def fake_mineru(tmp_path: Path) -> str:
    script = tmp_path / "fake_mineru.py"
    script.write_text(FAKE_MINERU)
    return f"{sys.executable} {script}"


@pytest.fixture()
def pdf(tmp_path: Path) -> Path:
    path = tmp_path / "paper.pdf"
    path.write_bytes(b"%PDF-1.4 fake")
    return path


class TestExtractPdfText:
    @pytest.mark.asyncio
    async def test_returns_markdown_output(self, fake_mineru: str, pdf: Path) -> None:
        text = await extract_pdf_text(pdf, command=fake_mineru, timeout=30)
        assert text == "# Extracted\n\nText from paper.pdf"

    @pytest.mark.asyncio
    async def test_output_directory_is_removed(self, fake_mineru: str, pdf: Path) -> None:
        await extract_pdf_text(pdf, command=fake_mineru, timeout=30)
        output_dir = Path((pdf.parent / "last_output_dir").read_text())
        assert not output_dir.exists()

    @pytest.mark.asyncio
    async def test_nonzero_exit_carries_stderr(
        self, fake_mineru: str, pdf: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FAKE_MINERU_MODE", "fail")
        with pytest.raises(ExtractionError) as excinfo:
            await extract_pdf_text(pdf, command=fake_mineru, timeout=30)
        assert "code 3" in str(excinfo.value)
        assert "layout model crashed" in excinfo.value.stderr
        assert excinfo.value.http_status == 422

    @pytest.mark.asyncio
    async def test_timeout_kills_process(
        self, fake_mineru: str, pdf: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FAKE_MINERU_MODE", "hang")
        with pytest.raises(ExtractionError, match="timed out"):
            await extract_pdf_text(pdf, command=fake_mineru, timeout=1)

    @pytest.mark.asyncio
    async def test_missing_output_file(
        self, fake_mineru: str, pdf: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FAKE_MINERU_MODE", "empty")
        with pytest.raises(ExtractionError, match="did not produce a text output"):
            await extract_pdf_text(pdf, command=fake_mineru, timeout=30)

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_replaced_not_raised(
        self, fake_mineru: str, pdf: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FAKE_MINERU_MODE", "latin1")
        text = await extract_pdf_text(pdf, command=fake_mineru, timeout=30)
        assert text == "caf\ufffd menu"

    @pytest.mark.asyncio
    async def test_missing_executable(self, pdf: Path) -> None:
        with pytest.raises(ExtractionError, match="Could not start MinerU"):
            await extract_pdf_text(pdf, command="definitely-not-mineru-xyz", timeout=5)


def test_find_first_text_file_is_name_ordered(tmp_path: Path) -> None:
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "later.md").write_text("later")
    (tmp_path / "a" / "deep").mkdir(parents=True)
    (tmp_path / "a" / "deep" / "first.txt").write_text("first")
    (tmp_path / "a" / "image.png").write_bytes(b"")

    assert find_first_text_file(tmp_path) == tmp_path / "a" / "deep" / "first.txt"
    assert find_first_text_file(tmp_path / "a", (".rst",)) is None
