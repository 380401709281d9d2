from io import BytesIO
from datetime import date
from openpyxl import load_workbook
from ris_app.models.shared.enums import RequestStatus
from ris_app.schemas.requisition.ris import RisDocumentView, RisLineView
from ris_app.utils.ris_workbook import RisWorkbookRenderer, format_form_date

def make_document(ris_number: str, quantity: int = 5) -> RisDocumentView:
    return RisDocumentView(
        ris_number=ris_number,
        budget_source="MOOE",
        purpose="Training supplies",
        lines=[
            RisLineView(
                stock_no="BP-1", unit="box", description="Ballpen", quantity=quantity,
                status=RequestStatus.APPROVED, balance_after_issue=12, remarks="Issued",
            ),
            RisLineView(
                stock_no="", unit="", description="Stapler", quantity=1,
                status=RequestStatus.REJECTED, balance_after_issue=0, remarks="Rejected",
            ),
        ],
        requested_by_name="Maria Santos",
        received_by_name="Pedro Cruz",
        request_date=date(2026, 3, 12),
        issue_date=date(2026, 3, 14),
    )

def test_format_form_date():
    assert format_form_date(date(2026, 3, 5)) == "03/05/2026"
    assert format_form_date(None) == ""

def test_single_form_layout():
    content = RisWorkbookRenderer().render_single(make_document("R2026-0312-001"))
    sheet = load_workbook(BytesIO(content)).worksheets[0]

    assert sheet["G8"].value == "R2026-0312-001"
    assert sheet["H7"].value == "MOOE"
    assert [sheet[f"{column}11"].value for column in "ABCDEFGH"] == [
        "BP-1", "box", "Ballpen", 5, "X", None, 12, "Issued"
    ]
    assert [sheet[f"{column}12"].value for column in "ABCDEFGH"] == [
        "N/A", "pcs", "Stapler", 1, None, "X", 0, "Rejected"
    ]
    assert sheet["B23"].value == "Training supplies"
    assert sheet["C26"].value == "Maria Santos"
    assert sheet["C28"].value == "03/12/2026"
    assert sheet["D28"].value == "03/14/2026"
    assert sheet["H26"].value == "Pedro Cruz"
    assert sheet["H28"].value == "03/12/2026"

def test_batch_packs_two_forms_per_sheet():
    documents = [make_document(f"R2026-0312-00{n}", quantity=n) for n in range(1, 6)]

    workbook = load_workbook(BytesIO(RisWorkbookRenderer().render_batch(documents)))

    assert workbook.sheetnames == ["RIS Set 1", "RIS Set 2", "RIS Set 3"]
    numbers = [(sheet["G8"].value, sheet["G37"].value) for sheet in workbook.worksheets]
    assert numbers == [
        ("R2026-0312-001", "R2026-0312-002"),
        ("R2026-0312-003", "R2026-0312-004"),
        ("R2026-0312-005", None),
    ]
    last = workbook.worksheets[2]
    assert last["D11"].value == 5
    assert last["A30"].value == "REQUISITION AND ISSUE SLIP"
    assert "A30:H30" in last.merged_cells

def test_lines_beyond_form_rows_are_not_written():
    document = make_document("R2026-0312-001")
    renderer = RisWorkbookRenderer(item_rows=1)

    sheet = load_workbook(BytesIO(renderer.render_single(document))).worksheets[0]

    assert sheet["C11"].value == "Ballpen"
    assert sheet["C12"].value is None

def test_template_file_is_used_when_configured(tmp_path):
    template = tmp_path / "ris-template.xlsx"
    blank = RisWorkbookRenderer().render_single(RisDocumentView(ris_number=""))
    template.write_bytes(blank)

    renderer = RisWorkbookRenderer(template_path=str(template))
    preview = renderer.preview_template()

    assert preview.sheet_name == "RIS"
    assert any(cell.address == "A1" for cell in preview.cells)
