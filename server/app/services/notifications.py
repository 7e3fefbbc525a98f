"""Best-effort side channel. Nothing here may abort the caller's mutation."""

from __future__ import annotations

import logging
from html import escape

from app.core.config import settings
from app.models.group import Group
from app.models.member import Member
from app.services.email_sender import email_sender

logger = logging.getLogger(__name__)


def _frontend_link(path: str) -> str | None:
    if not settings.FRONTEND_URL:
        return None
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}"


def _deliver(event: str, *, to: str | None, subject: str, text_body: str, extra: dict) -> bool:
    if not to:
        logger.info(f"{event}_skipped_no_email", extra=extra)
        return False
    try:
        sent = email_sender.send(
            subject=subject,
            text_body=text_body,
            html_body="<p>" + escape(text_body).replace("\n", "<br>") + "</p>",
            to=[to],
        )
    except Exception:
        logger.exception(f"{event}_failed", extra=extra)
        return False
    logger.info(event, extra={**extra, "sent": sent})
    return sent


def notify_member_welcome(member: Member, *, default_password: bool) -> bool:
    login_link = _frontend_link("/auth/login") or "-"
    lines = [
        f"Olá {member.name},",
        "",
        "Seu acesso ao sistema foi liberado.",
        f"Acesse: {login_link}",
    ]
    if default_password:
        lines.append(f"Senha inicial: {settings.DEFAULT_MEMBER_PASSWORD} (altere no primeiro acesso)")
    return _deliver(
        "member_welcome_email",
        to=member.email,
        subject="Bem-vindo(a)",
        text_body="\n".join(lines),
        extra={"member_id": member.id},
    )


def notify_group_invitation(group: Group, invitee: Member, inviter: Member) -> bool:
    link = _frontend_link("/groups/invitations") or "-"
    return _deliver(
        "group_invitation_email",
        to=invitee.email,
        subject=f"Convite para o grupo {group.name}",
        text_body=f"{inviter.name} convidou você para o grupo {group.name}.\nResponda em: {link}",
        extra={"group_id": group.id, "member_id": invitee.id, "invited_by": inviter.id},
    )


def notify_set_password(member: Member, set_password_url: str) -> bool:
    return _deliver(
        "set_password_email",
        to=member.email,
        subject="Defina sua senha",
        text_body=f"Olá {member.name},\n\nDefina sua senha de acesso em: {set_password_url}",
        extra={"member_id": member.id},
    )
