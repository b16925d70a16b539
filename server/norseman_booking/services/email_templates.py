"""HTML bodies for waitlist and reservation emails."""

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Optional

SIGNATURE = "Norseman Adventures"


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    html: str


def _layout(title: str, name: str, body_html: str, site_url: Optional[str]) -> str:
    home = ""
    if site_url:
        home = f'<p><a href="{escape(site_url, quote=True)}">{escape(site_url)}</a></p>'

    return (
        "<!DOCTYPE html>"
        '<html lang="no"><body style="font-family: Arial, sans-serif; color: #1f2937;">'
        f"<h1>{escape(title)}</h1>"
        f"<p>Hei {escape(name)},</p>"
        f"{body_html}"
        f"<p>Hilsen,<br>{SIGNATURE}</p>"
        f"{home}"
        "</body></html>"
    )


def _link(url: str, text: str) -> str:
    return f'<p><a href="{escape(url, quote=True)}">{escape(text)}</a></p>'


def build_waitlist_confirmation_email(
    name: str,
    tour_title: str,
    booking_url: str,
    hold_hours: int,
    site_url: Optional[str] = None,
) -> EmailMessage:
    body = (
        f"<p>Du er nå på ventelisten for <strong>{escape(tour_title)}</strong>.</p>"
        "<p>Vi sender deg en e-post så snart en plass blir ledig. "
        f"Da har du {hold_hours} timer på deg til å fullføre bestillingen.</p>"
        f"{_link(booking_url, 'Gå til bestillingssiden')}"
    )
    return EmailMessage(
        subject=f"Venteliste bekreftet: {tour_title}",
        html=_layout("Venteliste bekreftet", name, body, site_url),
    )


def build_first_in_line_email(
    name: str,
    tour_title: str,
    booking_url: str,
    site_url: Optional[str] = None,
) -> EmailMessage:
    body = (
        f"<p>Du er nå først i køen på ventelisten for <strong>{escape(tour_title)}</strong>.</p>"
        "<p>Blir en plass ledig, holder vi den av til deg og sender deg en betalingslenke.</p>"
        f"{_link(booking_url, 'Gå til bestillingssiden')}"
    )
    return EmailMessage(
        subject=f"Du er først i køen: {tour_title}",
        html=_layout("Du er først i køen", name, body, site_url),
    )


def build_reservation_held_email(
    name: str,
    tour_title: str,
    payment_url: str,
    expires_at: datetime,
    site_url: Optional[str] = None,
) -> EmailMessage:
    deadline = expires_at.strftime("%d.%m.%Y kl. %H:%M") + " (UTC)"
    body = (
        f"<p>Godt nytt! En plass har blitt ledig på <strong>{escape(tour_title)}</strong>, "
        "og den er holdt av til deg.</p>"
        f"<p>Fullfør betalingen innen <strong>{escape(deadline)}</strong>. "
        "Etter det går plassen videre til neste person på ventelisten.</p>"
        f"{_link(payment_url, 'Fullfør betalingen')}"
    )
    return EmailMessage(
        subject=f"Plassen din er holdt av: {tour_title}",
        html=_layout("Plassen din er holdt av", name, body, site_url),
    )
