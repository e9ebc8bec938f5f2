import io
from datetime import datetime

import pytest
from openpyxl import load_workbook

from conftest import LISBON, NOW, build_registration, build_user
from carwash.models.enums import ExportFormat
from carwash.services.export_service import EXPORT_HEADER, render_csv


@pytest.fixture
def export(services):
    return services["export_service"]


@pytest.fixture
def week_rows(fake_client):
    late = build_registration(
        build_user(email="zeca@empresa.pt", first_name="Zeca", last_name="Lopes"),
        datetime(2025, 3, 14, 9, 0, tzinfo=LISBON),
        parking_spot='Exterior: ao lado do "contentor"',
    )
    early = build_registration(
        build_user(email="ana@empresa.pt"),
        datetime(2025, 3, 11, 9, 0, tzinfo=LISBON),
        parking_spot="Garagem: Lugar 102",
    )
    previous_week = build_registration(
        build_user(email="old@empresa.pt"),
        datetime(2025, 3, 4, 9, 0, tzinfo=LISBON),
    )
    for registration in (late, early, previous_week):
        fake_client.seed_registration(registration)
    return early, late


def test_export_is_admin_only(export, user):
    assert export.export_week(user).status_code == 403


def test_csv_export(export, admin, week_rows):
    result = export.export_week(admin, ExportFormat.CSV)

    assert result.success
    export_file = result.data
    assert export_file.filename == "lavagens-semana-11.csv"
    assert export_file.media_type == "text/csv"
    assert export_file.content.startswith(b"\xef\xbb\xbf")

    lines = export_file.content.decode("utf-8-sig").splitlines()
    assert lines[0] == "Nome,Carro,Data,Lugar"
    assert lines[1:] == [
        '"Ana Silva","Seat Ibiza (AA00BB)","11/03/2025","Garagem: Lugar 102"',
        '"Zeca Lopes","Seat Ibiza (AA00BB)","14/03/2025","Exterior: ao lado do ""contentor"""',
    ]


def test_csv_of_an_empty_week_is_just_the_header():
    assert render_csv([]).decode("utf-8-sig") == "Nome,Carro,Data,Lugar\n"


def test_xlsx_export(export, admin, week_rows):
    result = export.export_week(admin, ExportFormat.XLSX, now=NOW)

    assert result.data.filename == "lavagens-semana-11.xlsx"
    workbook = load_workbook(io.BytesIO(result.data.content))
    sheet = workbook.active
    assert sheet.title == "Semana 11"

    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0] == EXPORT_HEADER
    assert rows[1] == ("Ana Silva", "Seat Ibiza (AA00BB)", "11/03/2025", "Garagem: Lugar 102")
    assert len(rows) == 3
    assert sheet["A1"].font.bold
