from agency_backend.exceptions import NotFoundError
from sales.models import Sale


def list_sales(*, company, sales_agent_id=None, customer_id=None, policy_id=None):
    qs = Sale.all_objects.filter(company=company).select_related(
        "policy",
        "customer",
        "sales_agent",
    )
    if sales_agent_id is not None:
        qs = qs.filter(sales_agent_id=sales_agent_id)
    if customer_id is not None:
        qs = qs.filter(customer_id=customer_id)
    if policy_id is not None:
        qs = qs.filter(policy_id=policy_id)
    return qs.order_by("-sale_date", "-id")


def get_sale(*, company, sale_id) -> Sale:
    sale = list_sales(company=company).filter(id=sale_id).first()
    if sale is None:
        raise NotFoundError("Sale not found.", sale_id=sale_id)
    return sale
