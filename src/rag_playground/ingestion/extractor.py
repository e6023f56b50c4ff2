"""PDF → text via the MinerU command-line tool.

MinerU is treated as an opaque external process: it is given a PDF and
an output directory and is expected to leave a Markdown (or plain text)
file somewhere beneath it.  The process is hard-killed when it exceeds
its time budget, and the output directory is always removed.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import tempfile
from pathlib import Path

from rag_playground.config import settings
from rag_playground.errors import ExtractionError

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".md", ".markdown", ".txt")


def find_first_text_file(root: Path, extensions: tuple[str, ...] = TEXT_EXTENSIONS) -> Path | None:
    """Depth-first, name-ordered search for the first file with a matching suffix."""
    for entry in sorted(root.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            found = find_first_text_file(entry, extensions)
            if found is not None:
                return found
        elif entry.is_file() and entry.suffix.lower() in extensions:
            return entry
    return None


async def extract_pdf_text(
    pdf_path: str | Path,
    *,
    command: str = settings.mineru_cmd,
    timeout: float = settings.mineru_timeout_seconds,
) -> str:
    """Run MinerU on *pdf_path* and return the extracted text.

    Parameters
    ----------
    pdf_path:
        PDF file to convert.
    command:
        MinerU executable, optionally with leading arguments.
    timeout:
        Seconds before the process is killed.

    Raises
    ------
    ExtractionError
        When the tool is missing, fails, times out, or writes no text file.
    """
    argv = [*shlex.split(command), "-p", str(pdf_path)]

    with tempfile.TemporaryDirectory(prefix="rag-playground-mineru-") as output_dir:
        argv += ["-o", output_dir]
        logger.info("Running MinerU on %s", pdf_path)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ExtractionError(f"Could not start MinerU ({argv[0]}): {exc}") from exc

        try:
            _, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("MinerU timed out after %.0fs on %s", timeout, pdf_path)
            raise ExtractionError("MinerU timed out.") from None
        finally:
            if proc.returncode is None:
                # Cancelled while waiting: do not leave the process behind.
                proc.kill()
                await proc.wait()

        stderr = stderr_bytes.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise ExtractionError(f"MinerU failed with code {proc.returncode}.", stderr=stderr)

        text_file = find_first_text_file(Path(output_dir))
        if text_file is None:
            raise ExtractionError("MinerU did not produce a text output.", stderr=stderr)

        text = text_file.read_text(encoding="utf-8", errors="replace")

    logger.info("Extracted %d characters from %s", len(text), pdf_path)
    return text
