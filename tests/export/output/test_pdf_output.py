"""
Tests for PDF assembly and the footer pass.
"""

import fitz
import pytest
from PIL import Image

from sitereport.export.layout import RasterizedPage
from sitereport.export.output import DocumentAssembler, apply_footers, assemble_document, page_label


def _page(landscape=False, color="white"):
    if landscape:
        return RasterizedPage(Image.new("RGB", (163, 106), color), 431.8, 279.4)
    return RasterizedPage(Image.new("RGB", (80, 112), color), 210, 297)


def _texts(pdf_bytes):
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        return [page.get_text() for page in doc]


class TestDocumentAssembler:
    def test_pages_keep_physical_size(self):
        # Arrange
        assembler = DocumentAssembler(title="Survey")

        # Act
        assembler.add_page(_page())
        assembler.add_page(_page(landscape=True))
        pdf = assembler.finish()

        # Assert
        with fitz.open(stream=pdf, filetype="pdf") as doc:
            a4, ledger = doc[0].rect, doc[1].rect
        assert (round(a4.width), round(a4.height)) == (595, 842)
        assert (round(ledger.width), round(ledger.height)) == (1224, 792)

    def test_when_no_pages_then_raises(self):
        with pytest.raises(ValueError, match="no pages"):
            DocumentAssembler().finish()

    def test_cannot_add_after_finish(self):
        assembler = DocumentAssembler()
        assembler.add_page(_page())
        assembler.finish()

        with pytest.raises(RuntimeError):
            assembler.add_page(_page())

    def test_metadata_is_set(self):
        pdf = assemble_document([_page()], title="Survey", subject="Spring", creator="Site Report Builder")

        with fitz.open(stream=pdf, filetype="pdf") as doc:
            assert doc.metadata["title"] == "Survey"
            assert doc.metadata["subject"] == "Spring"


class TestApplyFooters:
    def test_pages_after_first_are_numbered(self):
        pdf = assemble_document([_page(), _page(), _page()])

        texts = _texts(apply_footers(pdf, title="North Field Survey"))

        assert "Page" not in texts[0]
        assert "Page 2 of 3" in texts[1]
        assert "Page 3 of 3" in texts[2]
        assert "North Field Survey" in texts[1]

    def test_landscape_pages_use_site_map_title(self):
        pdf = assemble_document([_page(), _page(landscape=True)])

        texts = _texts(apply_footers(pdf, title="North Field Survey"))

        assert "Site Map" in texts[1]
        assert "North Field Survey" not in texts[1]

    def test_single_page_document_has_no_footer(self):
        texts = _texts(apply_footers(assemble_document([_page()]), title="Survey"))

        assert texts[0].strip() == ""

    def test_metadata_merged(self):
        pdf = assemble_document([_page(), _page()], title="Old")

        stamped = apply_footers(pdf, title="Survey", metadata={"title": "Survey", "creator": "Tester", "bogus": "x"})

        with fitz.open(stream=stamped, filetype="pdf") as doc:
            assert doc.metadata["title"] == "Survey"
            assert doc.metadata["creator"] == "Tester"


def test_page_label():
    assert page_label(2, 7) == "Page 2 of 7"
