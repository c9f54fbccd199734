"""
Shiprocket carrier endpoints (admin)

Shipment creation, live quotes, tracking, cancellation and shipping documents.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from storefront.api.deps import get_shiprocket, get_shipment_service, require_admin
from storefront.connectors.shiprocket_connector import ShiprocketConnector, pick_pickup_location
from storefront.schemas import CarrierOrderIds, ShipmentIds
from storefront.exceptions import NoPickupLocation
from storefront.services.shipment_service import ShipmentService, quote_rate

router = APIRouter(
    prefix="/shiprocket",
    tags=["shiprocket"],
    dependencies=[Depends(require_admin)],
)


class CancelRequest(BaseModel):
    awb: str


@router.get("/pickup-locations")
async def pickup_locations(carrier: ShiprocketConnector = Depends(get_shiprocket)):
    addresses = await carrier.get_pickup_locations()
    try:
        selected = pick_pickup_location(addresses)
    except NoPickupLocation:
        selected = None
    return {"success": True, "data": {"addresses": addresses, "selected": selected}}


@router.post("/orders/{order_id}/shipment", status_code=201)
async def create_shipment(order_id: int, shipments: ShipmentService = Depends(get_shipment_service)):
    """Register the order with Shiprocket, pick the cheapest courier and assign an AWB"""
    data = await shipments.create_shipment(order_id)
    return {"success": True, "message": "Shipment created successfully", "data": data}


@router.get("/rates")
async def live_rates(
    delivery_postcode: str,
    weight: float = Query(..., gt=0),
    pickup_postcode: Optional[str] = None,
    length: Optional[float] = Query(None, gt=0),
    breadth: Optional[float] = Query(None, gt=0),
    height: Optional[float] = Query(None, gt=0),
    cod: bool = False,
    shipments: ShipmentService = Depends(get_shipment_service),
):
    """Courier quotes for a postcode pair"""
    quotes = await shipments.get_live_rates(
        delivery_postcode,
        weight,
        pickup_postcode=pickup_postcode,
        length=length,
        breadth=breadth,
        height=height,
        cod=cod,
    )
    return {"success": True, "data": quotes, "count": len(quotes)}


@router.get("/couriers")
async def available_couriers(
    delivery_postcode: str,
    weight: float = Query(0.5, gt=0),
    pickup_postcode: Optional[str] = None,
    cod: bool = False,
    shipments: ShipmentService = Depends(get_shipment_service),
):
    """Couriers that service a destination, cheapest first"""
    quotes = await shipments.get_live_rates(
        delivery_postcode, weight, pickup_postcode=pickup_postcode, cod=cod
    )
    couriers = [
        {
            "courier_company_id": q.get("courier_company_id"),
            "courier_name": q.get("courier_name"),
            "rate": quote_rate(q),
            "etd": q.get("etd"),
            "cod": q.get("cod"),
        }
        for q in quotes
    ]
    # Unpriced quotes last
    couriers.sort(key=lambda c: (c["rate"] is None, c["rate"] or 0))
    return {"success": True, "data": couriers}


@router.get("/track/{awb}")
async def track(awb: str, shipments: ShipmentService = Depends(get_shipment_service)):
    return {"success": True, "data": await shipments.track(awb)}


@router.post("/cancel")
async def cancel(body: CancelRequest, shipments: ShipmentService = Depends(get_shipment_service)):
    result = await shipments.cancel(body.awb)
    message = "Shipment cancelled successfully" if result["cancelled"] else "Shiprocket did not confirm the cancellation"
    return {"success": result["cancelled"], "message": message, "data": result}


@router.get("/orders/{carrier_order_id}")
async def carrier_order_details(carrier_order_id: str, carrier: ShiprocketConnector = Depends(get_shiprocket)):
    return {"success": True, "data": await carrier.get_order_details(carrier_order_id)}


@router.post("/label")
async def label(body: ShipmentIds, shipments: ShipmentService = Depends(get_shipment_service)):
    return {"success": True, "data": await shipments.generate_label(body.shipment_ids)}


@router.post("/manifest")
async def manifest(body: ShipmentIds, shipments: ShipmentService = Depends(get_shipment_service)):
    return {"success": True, "data": await shipments.generate_manifest(body.shipment_ids)}


@router.post("/invoice")
async def invoice(body: CarrierOrderIds, shipments: ShipmentService = Depends(get_shipment_service)):
    return {"success": True, "data": await shipments.generate_invoice(body.order_ids)}
