"""
Customer records - upserted when a purchase completes
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from topup.core.organizations.models import Customer
from topup.core.transactions.models import Transaction

logger = logging.getLogger(__name__)


def upsert_customer_for_transaction(db: Session, transaction: Transaction) -> Optional[Customer]:
    """
    Create or update the customer behind a completed transaction and bump
    their purchase counters. Links transaction.customer_id.
    """
    email = (transaction.recipient_email or "").strip().lower()
    if not email:
        return None

    customer = (
        db.query(Customer)
        .filter(Customer.organization_id == transaction.organization_id, Customer.email == email)
        .first()
    )
    if customer is None:
        try:
            with db.begin_nested():
                customer = Customer(
                    organization_id=transaction.organization_id,
                    email=email,
                    phone_number=transaction.recipient_phone,
                    name=transaction.recipient_name,
                    total_purchases=0,
                    total_spent=0,
                )
                db.add(customer)
        except IntegrityError:
            # Created concurrently by another completion
            customer = (
                db.query(Customer)
                .filter(Customer.organization_id == transaction.organization_id, Customer.email == email)
                .one()
            )

    db.execute(
        update(Customer)
        .where(Customer.id == customer.id)
        .values(
            total_purchases=Customer.total_purchases + 1,
            total_spent=Customer.total_spent + transaction.amount,
            last_purchase_at=datetime.now(timezone.utc),
            phone_number=transaction.recipient_phone,
        )
        .execution_options(synchronize_session=False)
    )
    db.refresh(customer)
    transaction.customer_id = customer.id
    db.flush()
    logger.info(f"Customer updated: customer_id={customer.id}, order_id={transaction.order_id}")
    return customer
