import pytest

from conftest import CLIENT_ID, TRIP_ID, FakeBackend, make_service, make_trip, purchase, sale, stock
from tripdesk.enums import BalanceStyle
from tripdesk.models.forms import (
    CompleteTripForm, DieselForm, ExpenseForm, PurchaseForm, ReceiptForm, SaleForm, StockForm,
    TransferForm, TripDetailsForm,
)
from tripdesk.services.balance_service import BalanceService
from tripdesk.services.status_service import InvalidTransition, PermissionDenied
from tripdesk.services.trip_service import TripApiError
from tripdesk.services.validation_service import OverpaymentConfirmationRequired, TripValidationError

pytestmark = pytest.mark.anyio

TRIP = f"/trip/{TRIP_ID}"


async def test_worked_example_end_to_end():
    backend = FakeBackend(make_trip(), customer={"_id": CLIENT_ID, "openingBalance": 0})
    service = make_service(backend)

    trip = await service.load_trip(TRIP_ID)
    trip = await service.save_purchase(trip, PurchaseForm(supplier="s1", dc_number="DC-001", birds=500, weight=750, rate=80))
    assert trip.purchases[0].amount == 60000.0
    assert trip.purchases[0].avg_weight == 1.5
    assert trip.status.value == "ongoing"

    outcome = await service.save_sale(trip, SaleForm(
        client=CLIENT_ID, customer_user_id="u1", bill_number="BILL0001",
        birds=200, weight=300, rate=95, cash_paid=20000, online_paid=5000,
    ))
    assert outcome.sale.amount == 28500.0
    assert outcome.sale.balance == 3500.0
    assert outcome.balance_synced is True
    assert backend.body_of("PUT", f"/customer/{CLIENT_ID}/opening-balance") == {"newOpeningBalance": 3500.0}
    trip = outcome.trip

    trip_calls = backend.calls(prefix="/trip")
    with pytest.raises(TripValidationError) as exc:
        await service.save_sale(trip, SaleForm(client=CLIENT_ID, birds=350, weight=400, rate=95))
    assert "Only 300 birds are available" in exc.value.errors[0]
    # only the customer balance lookup went out
    assert backend.calls(prefix="/trip") == trip_calls

    trip = await service.save_stock(trip, StockForm(birds=300, weight=450, rate=80))
    assert service.preview_completion(trip, 12300)["suggestedMortality"] == 0

    trip = await service.complete_trip(trip, CompleteTripForm(closing_odometer=12300, final_remarks="done"))
    assert trip.status.value == "completed"
    assert backend.body_of("PUT", f"{TRIP}/complete") == {"closingOdometer": 12300.0, "finalRemarks": "done", "mortality": 0}


async def test_validation_failure_sends_nothing(purchased_trip):
    backend = FakeBackend(make_trip())
    service = make_service(backend)
    with pytest.raises(TripValidationError):
        await service.save_purchase(purchased_trip, PurchaseForm(supplier="s1", birds=10, weight=15, rate=80))
    with pytest.raises(TripValidationError):
        await service.save_stock(purchased_trip, StockForm(birds=900, weight=1, rate=80))
    assert backend.requests == []


async def test_balance_sync_failure_keeps_the_sale():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()]))
    backend.fail[("PUT", f"/customer/{CLIENT_ID}/opening-balance")] = (500, {"success": False, "message": "db down"})
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)

    outcome = await service.save_sale(trip, SaleForm(client=CLIENT_ID, birds=200, weight=300, rate=95, cash_paid=25000))
    assert outcome.balance_synced is False
    assert len(outcome.trip.sales) == 1
    assert ("DELETE", f"{TRIP}/sale/0") not in backend.calls()


async def test_balance_sync_transport_error_is_swallowed():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()]))
    backend.raise_on.add(("PUT", f"/customer/{CLIENT_ID}/opening-balance"))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    outcome = await service.save_sale(trip, SaleForm(client=CLIENT_ID, birds=10, weight=15, rate=95))
    assert outcome.balance_synced is False
    assert len(outcome.trip.sales) == 1


async def test_no_sync_when_balance_unknown():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()]))
    backend.fail[("GET", f"/customer/admin/{CLIENT_ID}")] = (404, {"success": False, "message": "no such customer"})
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    outcome = await service.save_sale(trip, SaleForm(client=CLIENT_ID, birds=10, weight=15, rate=95))
    assert outcome.balance_synced is None
    assert backend.calls("PUT", "/customer") == []


async def test_outstanding_style_sync():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()]),
                          customer={"outstandingBalance": 500, "outstandingBalanceType": "credit"})
    service = make_service(backend)
    service.balances = BalanceService(service.api, BalanceStyle.OUTSTANDING)
    trip = await service.load_trip(TRIP_ID)
    outcome = await service.save_sale(trip, SaleForm(client=CLIENT_ID, birds=10, weight=15, rate=100))
    # -500 credit + 1500 sale
    assert outcome.sale.balance == 1000.0
    assert backend.body_of("PUT", f"/customer/{CLIENT_ID}/outstanding-balance") == {
        "newOutstandingBalance": 1000.0, "outstandingBalanceType": "debit"
    }


async def test_overpayment_blocks_until_confirmed():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()]), customer={"openingBalance": 1000})
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    form = SaleForm(client=CLIENT_ID, birds=10, weight=15, rate=100, cash_paid=5000)

    with pytest.raises(OverpaymentConfirmationRequired) as exc:
        await service.save_sale(trip, form)
    assert exc.value.overpayment.deficit == 2500.0
    assert backend.calls("POST") == []

    outcome = await service.save_sale(trip, form.model_copy(update={"confirm_overpayment": True}))
    assert outcome.sale.balance == 0.0
    payload = backend.body_of("POST", f"{TRIP}/sale")
    assert "confirmOverpayment" not in payload
    assert payload["balance"] == 0.0


async def test_new_sale_gets_a_bill_number():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()]))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    outcome = await service.save_sale(trip, SaleForm(client=CLIENT_ID, birds=10, weight=15, rate=95))
    assert outcome.sale.bill_number.startswith("BILL")
    assert backend.body_of("POST", f"{TRIP}/sale")["billNumber"] == outcome.sale.bill_number


async def test_receipt_without_bill_number_gets_one():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()], sales=[sale()]),
                          customer={"openingBalance": 3500})
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    outcome = await service.save_receipt(trip, ReceiptForm(client=CLIENT_ID, cash_paid=500))
    assert outcome.sale.bill_number.startswith("BILL")
    assert backend.body_of("POST", f"{TRIP}/sale")["billNumber"] == outcome.sale.bill_number


async def test_edited_sale_without_bill_number_keeps_the_stored_one():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()], sales=[sale(bill="BILL0001")]))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    await service.save_sale(trip, SaleForm(client=CLIENT_ID, birds=150, weight=225, rate=95), editing_index=0)
    assert backend.body_of("PUT", f"{TRIP}/sale/0")["billNumber"] == "BILL0001"


async def test_failed_balance_lookup_ignores_submitted_balance():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()]))
    backend.fail[("GET", f"/customer/admin/{CLIENT_ID}")] = (500, {"success": False, "message": "down"})
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    outcome = await service.save_sale(trip, SaleForm(
        client=CLIENT_ID, bill_number="BILL0002", birds=10, weight=15, rate=100, cash_paid=1000, balance=-500,
    ))
    assert outcome.sale.balance == 500.0
    assert backend.body_of("POST", f"{TRIP}/sale")["balance"] == 500.0
    # nothing to sync without the customer's prior balance
    assert outcome.balance_synced is None
    assert backend.calls("PUT", "/customer") == []


async def test_sale_without_client_is_rejected_before_lookup():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()]))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    with pytest.raises(TripValidationError) as exc:
        await service.save_sale(trip, SaleForm(birds=10, weight=15, rate=95))
    assert exc.value.errors == ["client cannot be zero or empty"]
    assert backend.calls(prefix="/customer") == []


async def test_receipt_is_sent_as_receipt():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()], sales=[sale()]),
                          customer={"openingBalance": 3500})
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    outcome = await service.save_receipt(trip, ReceiptForm(client=CLIENT_ID, bill_number="R-1", online_paid=3500))
    payload = backend.body_of("POST", f"{TRIP}/sale")
    assert payload["isReceipt"] is True
    assert payload["saleType"] == "receipt"
    assert payload["birds"] == 0
    assert outcome.sale.balance == 0.0
    assert outcome.balance_synced is True


async def test_status_advanced_once_and_only_for_new_records():
    backend = FakeBackend(make_trip(purchases=[purchase()]))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)

    trip = await service.save_purchase(trip, PurchaseForm(supplier="s1", dc_number="DC-001", birds=500, weight=750, rate=80),
                                       editing_index=0)
    assert backend.calls("PUT", f"{TRIP}/status") == []

    trip = await service.save_expense(trip, ExpenseForm(category="toll", description="NH44", amount=120))
    trip = await service.save_expense(trip, ExpenseForm(category="tea", description="Tea", amount=40))
    assert backend.calls("PUT", f"{TRIP}/status") == [("PUT", f"{TRIP}/status")]
    assert trip.status.value == "ongoing"


async def test_status_update_failure_is_only_logged():
    backend = FakeBackend(make_trip())
    backend.fail[("PUT", f"{TRIP}/status")] = (500, {"success": False, "message": "nope"})
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    trip = await service.save_purchase(trip, PurchaseForm(supplier="s1", dc_number="DC-1", birds=5, weight=8, rate=80))
    assert len(trip.purchases) == 1
    assert trip.status.value == "started"


async def test_backend_rejection_raises_trip_api_error():
    backend = FakeBackend(make_trip())
    backend.fail[("POST", f"{TRIP}/purchase")] = (409, {"success": False, "message": "DC already billed"})
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    with pytest.raises(TripApiError) as exc:
        await service.save_purchase(trip, PurchaseForm(supplier="s1", dc_number="DC-1", birds=5, weight=8, rate=80))
    assert exc.value.status_code == 409
    assert exc.value.message == "DC already billed"


async def test_supervisor_locked_out_of_completed_trip():
    backend = FakeBackend(make_trip(status="completed", purchases=[purchase()]))
    service = make_service(backend, role="supervisor")
    trip = await service.load_trip(TRIP_ID)
    with pytest.raises(PermissionDenied):
        await service.save_expense(trip, ExpenseForm(category="toll", description="NH44", amount=120))


async def test_admin_edits_completed_trip_without_status_change():
    backend = FakeBackend(make_trip(status="completed", purchases=[purchase()]))
    service = make_service(backend, role="admin")
    trip = await service.load_trip(TRIP_ID)
    trip = await service.save_expense(trip, ExpenseForm(category="toll", description="NH44", amount=120))
    assert trip.status.value == "completed"
    assert backend.calls("PUT", f"{TRIP}/status") == []
    with pytest.raises(InvalidTransition):
        await service.complete_trip(trip, CompleteTripForm(closing_odometer=13000))


async def test_expense_edit_replaces_whole_array():
    backend = FakeBackend(make_trip(status="ongoing", expenses=[
        {"category": "toll", "description": "NH44", "amount": 120},
        {"category": "tea", "description": "Tea", "amount": 40},
    ]))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    trip = await service.save_expense(trip, ExpenseForm(category="tea", description="Tea and snacks", amount=60),
                                      editing_index=1)
    expenses = backend.body_of("PUT", f"{TRIP}/expenses")["expenses"]
    assert len(expenses) == 2
    assert expenses[1] == {"category": "tea", "description": "Tea and snacks", "amount": 60.0}
    assert trip.expenses[1].amount == 60.0


async def test_diesel_add_and_edit():
    backend = FakeBackend(make_trip(status="ongoing"))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    trip = await service.save_diesel(trip, DieselForm(station_name="HP Salem", volume=40, rate=94))
    assert backend.body_of("PUT", f"{TRIP}/diesel")["stations"][0]["amount"] == 3760.0
    trip = await service.save_diesel(trip, DieselForm(station_name="HP Salem", volume=50, rate=94), editing_index=0)
    assert backend.body_of("PUT", f"{TRIP}/diesel/0")["amount"] == 4700.0
    assert trip.diesel.stations[0].volume == 50.0


async def test_delete_stock_checks_index():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()], stocks=[stock()]))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    with pytest.raises(TripValidationError):
        await service.delete_stock(trip, 4)
    trip = await service.delete_stock(trip, 0)
    assert trip.stocks == []


async def test_completion_gate_runs_before_backend():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()], sales=[sale()]))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    preview = service.preview_completion(trip, 11000)
    assert preview["odometerOk"] is False
    assert preview["canSubmit"] is False
    with pytest.raises(TripValidationError):
        await service.complete_trip(trip, CompleteTripForm(closing_odometer=11000))
    assert backend.calls("PUT", f"{TRIP}/complete") == []


async def test_trip_details_for_transferred_trip():
    backend = FakeBackend(make_trip(type="transferred", driver="TBD", route={"from": "TBD", "to": "TBD"},
                                    vehicleReadings={"opening": 0}))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    trip = await service.update_trip_details(trip, TripDetailsForm(
        driver="Arun", labour="Kumar", route={"from": "Salem", "to": "Erode"}, vehicle_readings={"opening": 4500},
    ))
    assert backend.body_of("PUT", f"{TRIP}/complete-details") == {
        "driver": "Arun", "labour": "Kumar", "route": {"from": "Salem", "to": "Erode"},
        "place": "", "vehicleReadings": {"opening": 4500.0},
    }
    assert trip.driver == "Arun"


async def test_transfer_defaults_rate_and_trims_labours():
    backend = FakeBackend(make_trip(status="ongoing", purchases=[purchase()], sales=[sale()]))
    service = make_service(backend)
    trip = await service.load_trip(TRIP_ID)
    data = await service.transfer(trip, TransferForm(
        supervisor_id="sup1", vehicle_id="665f1c2ab7e4a1d2c3b4a777", driver="Arun", labours=[" Kumar ", ""],
        place="Salem", vehicle_readings={"opening": 5000}, reason="Breakdown",
        transfer_birds={"birds": 100, "weight": 150},
    ))
    assert data["newTrip"]["type"] == "transferred"
    payload = backend.body_of("POST", f"{TRIP}/transfer")
    assert payload["labours"] == ["Kumar"]
    assert payload["transferBirds"]["rate"] == 80
    assert payload["transferBirds"]["amount"] == 12000.0
