"""Payment app deep links for settling a member's total."""

from urllib.parse import quote

from .models import PaymentLink


def venmo_link(username: str, amount: float, note: str) -> str:
    """Venmo deep link that opens a prefilled payment."""
    return (
        f"venmo://paycharge?txn=pay&recipients={username}"
        f"&amount={amount:.2f}&note={quote(note, safe='')}"
    )


def paypal_link(username: str, amount: float) -> str:
    """PayPal.me link."""
    return f"https://paypal.me/{username}/{amount:.2f}"


def cash_app_link(cashtag: str, amount: float) -> str:
    """Cash App link. A leading $ on the cashtag is optional."""
    tag = cashtag.removeprefix("$")
    return f"https://cash.app/${tag}/{amount:.2f}"


def generate_payment_links(
    amount: float,
    venmo_username: str | None = None,
    paypal_username: str | None = None,
    cash_app_tag: str | None = None,
    note: str = "",
) -> list[PaymentLink]:
    """
    Build payment links for every handle the payee has set up.

    Args:
        amount: Amount to pay
        venmo_username: Payee's Venmo username
        paypal_username: Payee's PayPal.me username
        cash_app_tag: Payee's Cash App cashtag
        note: Payment note (Venmo only)

    Returns:
        Links in Venmo, PayPal, Cash App order
    """
    links = []

    if venmo_username:
        links.append(
            PaymentLink(
                provider="venmo",
                url=venmo_link(venmo_username, amount, note),
                display_name="Venmo",
            )
        )

    if paypal_username:
        links.append(
            PaymentLink(
                provider="paypal",
                url=paypal_link(paypal_username, amount),
                display_name="PayPal",
            )
        )

    if cash_app_tag:
        links.append(
            PaymentLink(
                provider="cashapp",
                url=cash_app_link(cash_app_tag, amount),
                display_name="Cash App",
            )
        )

    return links
