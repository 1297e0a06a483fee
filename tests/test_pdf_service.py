"""Tests for PDF rendering and merging."""

from io import BytesIO

import pytest
from pypdf import PdfReader

from batch_print.domains.printing import pdf
from batch_print.domains.printing.pdf import PdfService, normalize_html

from conftest import make_entry


def page_count(document: bytes) -> int:
    return len(PdfReader(BytesIO(document)).pages)


@pytest.fixture
def engine_calls(monkeypatch):
    calls = {"render": 0, "merge": 0}
    real_render, real_merge = pdf.render, pdf.merge

    def render(html):
        calls["render"] += 1
        return real_render(html)

    def merge(documents):
        calls["merge"] += 1
        return real_merge(documents)

    monkeypatch.setattr(pdf, "render", render)
    monkeypatch.setattr(pdf, "merge", merge)
    return calls


class TestNormalize:
    def test_wraps_in_single_root(self):
        assert normalize_html("<p>a</p><p>b</p>") == "<div><p>a</p><p>b</p></div>"

    def test_named_entities_become_numeric(self):
        assert normalize_html("a&nbsp;b&copy;") == "<div>a&#160;b&#169;</div>"

    def test_xml_entities_are_kept(self):
        assert normalize_html("&lt;&amp;&gt;&quot;&apos;") == "<div>&lt;&amp;&gt;&quot;&apos;</div>"

    def test_unknown_entity_is_kept(self):
        assert normalize_html("&bogus;") == "<div>&bogus;</div>"

    @pytest.mark.parametrize("tag", ["<br>", "<BR>", "<br/>", "<br />"])
    def test_line_breaks_are_self_closing(self, tag):
        assert normalize_html(f"a{tag}b") == "<div>a<br/>b</div>"


class TestCreatePdf:
    def test_render(self, pdf_bytes):
        assert pdf_bytes.startswith(b"%PDF")
        assert page_count(pdf_bytes) == 1

    def test_entities_and_breaks(self):
        document = PdfService.create_pdf_file("Dear&nbsp;patron,<br>your item is &laquo;overdue&raquo;")
        assert page_count(document) == 1

    @pytest.mark.parametrize("body", [None, "", "   \n"])
    def test_blank_body_skips_engine(self, engine_calls, body):
        assert PdfService.create_pdf_file(body) == b""
        assert engine_calls["render"] == 0

    def test_engine_failure_gives_empty_result(self, monkeypatch):
        def broken(html):
            raise pdf.RenderError("boom")

        monkeypatch.setattr(pdf, "render", broken)
        assert PdfService.create_pdf_file("<p>text</p>") == b""


class TestCombine:
    def test_empty_list_skips_engine(self, engine_calls):
        assert PdfService.combine_pdf_files([]) == b""
        assert engine_calls["merge"] == 0

    def test_merge_in_order(self, pdf_bytes):
        second = PdfService.create_pdf_file("<p>one</p><pdf:nextpage /><p>two</p>")
        entries = [make_entry(content=pdf_bytes.hex()), make_entry(content=second.hex())]

        merged = PdfService.combine_pdf_files(entries)
        assert page_count(merged) == page_count(pdf_bytes) + page_count(second)

    def test_merge_same_document_twice(self, pdf_bytes):
        entries = [make_entry(content=pdf_bytes.hex()), make_entry(content=pdf_bytes.hex())]
        assert page_count(PdfService.combine_pdf_files(entries)) == 2

    def test_entries_without_content_are_skipped(self, pdf_bytes):
        entries = [
            make_entry(content=None),
            make_entry(content=pdf_bytes.hex()),
            make_entry(content="  "),
        ]
        assert page_count(PdfService.combine_pdf_files(entries)) == 1

    def test_bad_entries_are_skipped(self, pdf_bytes):
        entries = [
            make_entry(content="not hex"),
            make_entry(content=b"not a pdf".hex()),
            make_entry(content=pdf_bytes.hex()),
        ]
        assert page_count(PdfService.combine_pdf_files(entries)) == 1

    def test_document_failing_during_append_is_skipped(self, pdf_bytes):
        broken = b"%PDF-1.4\nstartxref\n99999999\n%%EOF"
        entries = [
            make_entry(content=pdf_bytes.hex()),
            make_entry(content=broken.hex()),
            make_entry(content=pdf_bytes.hex()),
        ]
        assert page_count(PdfService.combine_pdf_files(entries)) == 2

    def test_all_documents_failing_gives_empty_result(self):
        entries = [make_entry(content=b"not a pdf".hex()), make_entry(content=b"%PDF-1.4".hex())]
        assert PdfService.combine_pdf_files(entries) == b""

    def test_nothing_usable_skips_engine(self, engine_calls):
        entries = [make_entry(content=None), make_entry(content="zz")]
        assert PdfService.combine_pdf_files(entries) == b""
        assert engine_calls["merge"] == 0

    def test_merge_failure_gives_empty_result(self, monkeypatch, pdf_bytes):
        def broken(documents):
            raise RuntimeError("boom")

        monkeypatch.setattr(pdf, "merge", broken)
        assert PdfService.combine_pdf_files([make_entry(content=pdf_bytes.hex())]) == b""
