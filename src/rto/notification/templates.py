"""Message templates for RTO notifications."""

REASON_TEXT = {
    "ndr_unresolved": "Delivery attempts exhausted",
    "customer_cancellation": "Order cancelled by customer",
    "address_issue": "Delivery address could not be located",
    "refused_delivery": "Delivery refused by customer",
    "qc_failure": "Quality check failed",
    "damaged_in_transit": "Package damaged in transit",
    "incorrect_product": "Incorrect product shipped",
    "other": "Unable to complete delivery",
}


def reason_text(reason: str | None) -> str:
    return REASON_TEXT.get(reason or "", "Unable to complete delivery")


class WarehouseIncomingTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": f"Incoming RTO {context.get('reverse_awb', 'N/A')}",
            "body": (
                f"Shipment {context.get('awb', 'N/A')} is returning to your warehouse.\n\n"
                f"Reverse AWB: {context.get('reverse_awb', 'N/A')}\n"
                f"Reason: {reason_text(context.get('rto_reason'))}\n"
                f"Expected by: {context.get('expected_return_date', 'N/A')}\n\n"
                "Quality check is required on arrival."
            ),
        }


class CustomerRTOTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        name = context.get("customer_name") or "Customer"
        body = (
            f"Hi {name}, your order {context.get('order_id', 'N/A')} is being returned to the seller. "
            f"Reason: {reason_text(context.get('rto_reason'))}."
        )
        if context.get("reverse_awb"):
            body += f" Return tracking: {context['reverse_awb']}."
        return {"body": body}


class WarehouseArrivalTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": f"RTO {context.get('reverse_awb', 'N/A')} received",
            "body": "The returned package has reached the warehouse and is awaiting quality check.",
        }


class QCCompletedTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        outcome = "passed" if context.get("passed") else "failed"
        return {
            "subject": f"QC {outcome} for RTO {context.get('reverse_awb', 'N/A')}",
            "body": (
                f"Quality check {outcome}.\n"
                f"Inspected by: {context.get('inspected_by', 'N/A')}\n"
                f"Remarks: {context.get('remarks') or '-'}"
            ),
        }
