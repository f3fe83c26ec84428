from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from config import settings
from tripdesk.dependencies import get_trip_service
from tripdesk.services import export_service
from tripdesk.services.trip_service import TripDeskService

router = APIRouter()

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{trip_id}/sales/{index}/invoice.pdf")
async def sale_invoice(trip_id: str, index: int, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    if not 0 <= index < len(trip.sales):
        raise HTTPException(status_code=404, detail=f"Sale #{index} does not exist")
    sale = trip.sales[index]
    pdf = export_service.render_invoice_pdf(trip, sale, settings.COMPANY_NAME, settings.CURRENCY)
    return _attachment(pdf, "application/pdf", f"{sale.bill_number or f'sale-{index}'}.pdf")


@router.get("/{trip_id}/report.pdf")
async def trip_report(trip_id: str, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    pdf = export_service.render_trip_report_pdf(trip, settings.COMPANY_NAME, settings.CURRENCY)
    return _attachment(pdf, "application/pdf", f"{trip.trip_id or trip_id}.pdf")


@router.get("/{trip_id}/sales-book.xlsx")
async def sales_book(trip_id: str, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    content = export_service.build_sales_book(trip, settings.COMPANY_NAME)
    return _attachment(content, XLSX, f"{trip.trip_id or trip_id}.xlsx")
