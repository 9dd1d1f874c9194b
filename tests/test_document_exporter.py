from __future__ import annotations

import pytest
from openpyxl import load_workbook

from adapters.document_exporter import (
    export_blocks,
    export_tool_output,
    find_unique_file_name,
    fix_extension,
    render_blocks_html,
    render_presentation_html,
)
from core.domain.models import RichTableContent, RichTextBlock
from core.domain.tools import Presentation, Tool, ToolOutput


@pytest.mark.parametrize(
    ("name", "ext", "expected"),
    [
        ("report", ".pdf", "report.pdf"),
        ("report.PDF", ".pdf", "report.PDF"),
        ("report.docx", ".pdf", "report.pdf"),
        ("v1.2 release notes", ".html", "v1.2 release notes.html"),
    ],
)
def test_fix_extension(name, ext, expected):
    assert fix_extension(name, ext) == expected


def test_find_unique_file_name():
    taken = {"plan.xlsx", "plan (1).xlsx", "notes"}
    assert find_unique_file_name("plan.xlsx", taken) == "plan (2).xlsx"
    assert find_unique_file_name("notes", taken) == "notes (1)"
    assert find_unique_file_name("fresh.pdf", taken) == "fresh.pdf"


def test_render_blocks_html_covers_block_types():
    blocks = [
        RichTextBlock(type="heading1", content="Summary"),
        RichTextBlock(type="bulletList", content="One\n\nTwo"),
        RichTextBlock(type="checkList", content="[x] Done\n[ ] Pending"),
        RichTextBlock(type="table", content=RichTableContent(rows=[["Item", "Cost"], ["Figma", "75"]])),
        RichTextBlock(type="paragraph", content="<script>alert(1)</script>"),
    ]
    html = render_blocks_html(title="Closing Report", blocks=blocks, subtitle="Website Redesign")

    assert '<h1 class="block">Summary</h1>' in html
    assert html.count("<li>") == 2
    assert '<li class="done">&#9745; Done</li>' in html
    assert "<th>Item</th>" in html and "<td>Figma</td>" in html
    assert "&lt;script&gt;" in html
    assert "Website Redesign" in html


def test_render_presentation_html():
    deck = Presentation(slides=[{"title": "Roadmap", "content": "Q1 launch\nQ2 scale"}])
    html = render_presentation_html(deck)
    assert '<section class="slide">' in html
    assert "<li>Q2 scale</li>" in html


def test_export_blocks_html(tmp_path):
    path = export_blocks(
        title="Brief",
        blocks=[RichTextBlock(type="paragraph", content="Scope.")],
        output_path=tmp_path / "nested" / "brief.html",
    )
    assert path.read_text(encoding="utf-8").count("Scope.") == 1


def test_export_spreadsheet_tool_output(tmp_path):
    (tmp_path / "budget.xlsx").write_bytes(b"")
    output = ToolOutput(
        tool=Tool.EXCEL_SHEET,
        text="Here is the budget.",
        data={
            "fileName": "budget",
            "sheets": [
                {"name": "Q1/Q2", "data": [["Item", "Cost"], ["Figma", 75]]},
                {"name": "Q1/Q2", "data": [["Total", 75]]},
            ],
        },
    )
    path = export_tool_output(output, tmp_path)

    assert path.name == "budget (1).xlsx"
    workbook = load_workbook(path)
    assert workbook.sheetnames == ["Q1 Q2", "Q1 Q2 (1)"]
    assert workbook["Q1 Q2"]["B2"].value == 75


def test_export_word_document_as_html(tmp_path):
    output = ToolOutput(
        tool=Tool.WORD_DOCUMENT,
        text="Drafted.",
        data={"fileName": "memo.docx", "content": [{"type": "heading1", "text": "Memo"}, {"text": "Hello team."}]},
    )
    path = export_tool_output(output, tmp_path, pdf=False)
    assert path.name == "memo.html"
    html = path.read_text(encoding="utf-8")
    assert '<h1 class="block">Memo</h1>' in html
    assert "<p>Hello team.</p>" in html


def test_export_rejects_non_file_tools(tmp_path):
    output = ToolOutput(tool=Tool.CODE, text="x", data={"language": "python", "code": "pass"})
    with pytest.raises(ValueError):
        export_tool_output(output, tmp_path)


def test_export_blocks_pdf(tmp_path):
    try:
        import weasyprint  # noqa: F401
    except OSError as exc:  # sin pango/cairo en el sistema
        pytest.skip(f"WeasyPrint unavailable: {exc}")

    path = export_blocks(
        title="Brief",
        blocks=[RichTextBlock(type="paragraph", content="Scope.")],
        output_path=tmp_path / "brief.pdf",
    )
    assert path.read_bytes().startswith(b"%PDF")
