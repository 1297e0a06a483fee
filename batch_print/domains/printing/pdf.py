import logging
import re
from html.entities import name2codepoint
from io import BytesIO
from typing import List, Sequence, Tuple

from pypdf import PdfReader, PdfWriter
from xhtml2pdf import pisa

from batch_print.domains.printing.entities import PrintEntry

logger = logging.getLogger(__name__)

# Именованные сущности HTML в числовые; предопределенные в XML остаются как есть
XML_ENTITIES = {"amp", "lt", "gt", "quot", "apos"}
NUMERIC_ENTITIES = {
    name: f"&#{codepoint};"
    for name, codepoint in name2codepoint.items()
    if name not in XML_ENTITIES
}

_ENTITY_RE = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)


class RenderError(Exception):
    """Движок не смог построить PDF"""


def normalize_html(body: str) -> str:
    """Подготовка тела уведомления к рендерингу"""
    html = "<div>" + body + "</div>"
    html = _ENTITY_RE.sub(lambda m: NUMERIC_ENTITIES.get(m.group(1), m.group(0)), html)
    return _BR_RE.sub("<br/>", html)


def render(html: str) -> bytes:
    """HTML в PDF через xhtml2pdf"""
    output = BytesIO()
    status = pisa.CreatePDF(src=html, dest=output, encoding="utf-8")
    if status.err:
        raise RenderError(f"xhtml2pdf reported {status.err} error(s)")
    return output.getvalue()


def merge(documents: Sequence[Tuple[object, bytes]]) -> bytes:
    """Склейка PDF-документов по порядку через pypdf.

    Документ, который не удалось добавить, пропускается; если не добавлен
    ни один, результат пустой.
    """
    writer = PdfWriter()
    appended = 0
    for label, document in documents:
        try:
            writer.append(PdfReader(BytesIO(document)))
        except Exception:
            logger.error(f"Failed to merge entry: {label}", exc_info=True)
            continue
        appended += 1
    if not appended:
        return b""
    output = BytesIO()
    writer.write(output)
    return output.getvalue()


class PdfService:
    """Создание и объединение PDF-документов.

    Ошибки движков не пробрасываются: они пишутся в лог, а результатом
    становится пустая последовательность байт. Поэтому пустой результат
    не отличает "нечего обрабатывать" от "движок упал".
    """

    @staticmethod
    def create_pdf_file(html_content: str) -> bytes:
        """Создание PDF из HTML; пустой ввод дает пустой результат"""
        if html_content is None or not html_content.strip():
            return b""
        try:
            return render(normalize_html(html_content))
        except Exception:
            logger.error("Error creating PDF", exc_info=True)
            return b""

    @staticmethod
    def combine_pdf_files(entries: Sequence[PrintEntry]) -> bytes:
        """Объединение отдельных записей в один файл пакетной печати"""
        if not entries:
            return b""

        documents: List[Tuple[object, bytes]] = []
        for entry in entries:
            if not entry.has_content:
                logger.info(f"Skipping print entry {entry.id} without content")
                continue
            try:
                document = bytes.fromhex(entry.content)
            except ValueError:
                logger.error(f"Entry {entry.id} content is not hex encoded", exc_info=True)
                continue
            documents.append((entry.id, document))

        if not documents:
            return b""
        try:
            return merge(documents)
        except Exception:
            logger.error("Error merging PDFs", exc_info=True)
            return b""
