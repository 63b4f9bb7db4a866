"""Tests for EmailTokenService.

Token lifecycle: issue supersedes earlier tokens, confirmation is
single-use, and the confirm checks run in a fixed order so a token that is
both superseded and expired reports "superseded".
"""

import asyncio
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from savereturn.core.errors import (
    DetailsMissingError,
    EmailMissingError,
    ServiceUnavailableError,
    TokenExpiredError,
    TokenInvalidError,
    TokenSupersededError,
    TokenUsedError,
)
from savereturn.models.base import as_utc, utcnow
from savereturn.models.email import Validity
from savereturn.repositories.email_repository import EmailRepository
from savereturn.services.email_token_service import EmailTokenService

_SERVICE = "apply-for-a-licence"
_EMAIL = "enc:alice"
_DETAILS = "enc:details"
_SERVICE_MODULE = "savereturn.services.email_token_service"


def _db_down() -> OperationalError:
    return OperationalError("UPDATE emails", {}, Exception("connection lost"))


async def _issue(service: EmailTokenService, **overrides) -> uuid.UUID:
    kwargs = {
        "service_slug": _SERVICE,
        "encrypted_email": _EMAIL,
        "encrypted_details": _DETAILS,
    }
    kwargs.update(overrides)
    return await service.issue(**kwargs)


def _later(minutes: int):
    """Patch the service clock to ``minutes`` from now."""
    return patch(
        f"{_SERVICE_MODULE}.utcnow",
        return_value=utcnow() + timedelta(minutes=minutes),
    )


class TestIssue:
    """Tests for EmailTokenService.issue."""

    @pytest.mark.asyncio
    async def test_issue_returns_token_for_valid_row(self, db_session):
        """Issued token is the id of a valid row holding the details."""
        token = await _issue(EmailTokenService(db_session))

        email = await EmailRepository.get_for_service(
            db_session, service_slug=_SERVICE, token_id=token
        )
        assert email is not None
        assert email.validity == Validity.VALID.value
        assert email.encrypted_payload == _DETAILS

    @pytest.mark.asyncio
    async def test_issue_uses_default_duration(self, db_session):
        """Without a duration, the token lives for the configured default."""
        before = utcnow()
        token = await _issue(EmailTokenService(db_session))

        email = await EmailRepository.get_for_service(
            db_session, service_slug=_SERVICE, token_id=token
        )
        lifetime = as_utc(email.expires_at) - before
        assert timedelta(minutes=29) < lifetime <= timedelta(minutes=31)

    @pytest.mark.asyncio
    async def test_issue_honours_duration(self, db_session):
        """An explicit duration in minutes sets the expiry."""
        before = utcnow()
        token = await _issue(EmailTokenService(db_session), duration_minutes=120)

        email = await EmailRepository.get_for_service(
            db_session, service_slug=_SERVICE, token_id=token
        )
        lifetime = as_utc(email.expires_at) - before
        assert timedelta(minutes=119) < lifetime <= timedelta(minutes=121)

    @pytest.mark.asyncio
    async def test_new_token_supersedes_previous(self, db_session):
        """Only the newest token for an identity stays valid."""
        service = EmailTokenService(db_session)
        first = await _issue(service)
        second = await _issue(service)

        valid = await EmailRepository.list_valid(
            db_session, service_slug=_SERVICE, encrypted_email=_EMAIL
        )
        assert first != second
        assert [e.id for e in valid] == [second]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("encrypted_email", [None, ""])
    async def test_missing_email_rejected(self, db_session, encrypted_email):
        """Missing or empty email raises email.missing."""
        with pytest.raises(EmailMissingError):
            await _issue(
                EmailTokenService(db_session), encrypted_email=encrypted_email
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("encrypted_details", [None, ""])
    async def test_missing_details_rejected(self, db_session, encrypted_details):
        """Missing or empty details raises details.missing."""
        with pytest.raises(DetailsMissingError):
            await _issue(
                EmailTokenService(db_session), encrypted_details=encrypted_details
            )

    @pytest.mark.asyncio
    async def test_email_checked_before_details(self, db_session):
        """With both fields missing, the email error wins."""
        with pytest.raises(EmailMissingError):
            await _issue(
                EmailTokenService(db_session),
                encrypted_email=None,
                encrypted_details=None,
            )

    @pytest.mark.asyncio
    async def test_validation_failure_writes_nothing(self, db_session):
        """A rejected issue does not supersede the existing token."""
        service = EmailTokenService(db_session)
        first = await _issue(service)

        with pytest.raises(DetailsMissingError):
            await _issue(service, encrypted_details="")

        valid = await EmailRepository.list_valid(
            db_session, service_slug=_SERVICE, encrypted_email=_EMAIL
        )
        assert [e.id for e in valid] == [first]

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_previous_token_valid(self, db_session):
        """Supersede and create are rolled back together."""
        service = EmailTokenService(db_session)
        first = await _issue(service)

        with (
            patch.object(
                EmailRepository, "create", AsyncMock(side_effect=_db_down())
            ),
            pytest.raises(ServiceUnavailableError),
        ):
            await _issue(service)

        valid = await EmailRepository.list_valid(
            db_session, service_slug=_SERVICE, encrypted_email=_EMAIL
        )
        assert [e.id for e in valid] == [first]

    @pytest.mark.asyncio
    async def test_uniqueness_conflict_keeps_previous_token_valid(self, db_session):
        """A uniqueness violation is unavailable and undoes the supersede."""
        service = EmailTokenService(db_session)
        first = await _issue(service)
        conflict = IntegrityError(
            "INSERT INTO emails", {}, Exception("uq_emails_one_valid_per_identity")
        )

        with (
            patch.object(EmailRepository, "create", AsyncMock(side_effect=conflict)),
            pytest.raises(ServiceUnavailableError) as exc_info,
        ):
            await _issue(service)

        assert exc_info.value.status_code == 503
        assert exc_info.value.name == "unavailable"
        valid = await EmailRepository.list_valid(
            db_session, service_slug=_SERVICE, encrypted_email=_EMAIL
        )
        assert [e.id for e in valid] == [first]

    @pytest.mark.asyncio
    async def test_lost_issue_race_is_unavailable(self, db_session, session_factory):
        """A valid row committed by a concurrent issue makes this issue fail."""
        competitor: list[uuid.UUID] = []

        async def issued_elsewhere(_db, **_kwargs) -> int:
            # The other issue commits after this one found nothing to supersede
            async with session_factory() as other:
                email = await EmailRepository.create(
                    other,
                    service_slug=_SERVICE,
                    encrypted_email=_EMAIL,
                    encrypted_payload="enc:other",
                    expires_at=utcnow() + timedelta(minutes=30),
                )
                await other.commit()
                competitor.append(email.id)
            return 0

        with (
            patch.object(
                EmailRepository,
                "supersede_all",
                AsyncMock(side_effect=issued_elsewhere),
            ),
            pytest.raises(ServiceUnavailableError) as exc_info,
        ):
            await _issue(EmailTokenService(db_session))

        assert isinstance(exc_info.value.__cause__, IntegrityError)
        valid = await EmailRepository.list_valid(
            db_session, service_slug=_SERVICE, encrypted_email=_EMAIL
        )
        assert [e.id for e in valid] == competitor


class TestConfirm:
    """Tests for EmailTokenService.confirm."""

    @pytest.mark.asyncio
    async def test_confirm_returns_details_and_marks_used(self, db_session):
        """Valid token yields its details and becomes used."""
        service = EmailTokenService(db_session)
        token = await _issue(service)

        details = await service.confirm(service_slug=_SERVICE, token=str(token))

        assert details == _DETAILS
        email = await EmailRepository.get_for_service(
            db_session, service_slug=_SERVICE, token_id=token
        )
        assert email.validity == Validity.USED.value

    @pytest.mark.asyncio
    async def test_second_confirm_reports_used(self, db_session):
        """Tokens are single-use."""
        service = EmailTokenService(db_session)
        token = await _issue(service)
        await service.confirm(service_slug=_SERVICE, token=str(token))

        with pytest.raises(TokenUsedError):
            await service.confirm(service_slug=_SERVICE, token=str(token))

    @pytest.mark.asyncio
    async def test_unknown_token_is_invalid(self, db_session):
        """A well-formed but unknown token reports token.invalid."""
        with pytest.raises(TokenInvalidError):
            await EmailTokenService(db_session).confirm(
                service_slug=_SERVICE, token=str(uuid.uuid4())
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["", "not-a-uuid", "1234"])
    async def test_malformed_token_is_invalid(self, db_session, token):
        """Anything that is not a UUID reports token.invalid."""
        with pytest.raises(TokenInvalidError):
            await EmailTokenService(db_session).confirm(
                service_slug=_SERVICE, token=token
            )

    @pytest.mark.asyncio
    async def test_token_from_other_service_is_invalid(self, db_session):
        """A token can only be confirmed by the service that issued it."""
        service = EmailTokenService(db_session)
        token = await _issue(service)

        with pytest.raises(TokenInvalidError):
            await service.confirm(service_slug="register-a-boat", token=str(token))

    @pytest.mark.asyncio
    async def test_superseded_token_rejected(self, db_session):
        """An older token reports token.superseded; the newer one works."""
        service = EmailTokenService(db_session)
        first = await _issue(service)
        second = await _issue(service)

        with pytest.raises(TokenSupersededError):
            await service.confirm(service_slug=_SERVICE, token=str(first))

        details = await service.confirm(service_slug=_SERVICE, token=str(second))
        assert details == _DETAILS

    @pytest.mark.asyncio
    async def test_expired_token_rejected(self, db_session):
        """A valid token past its expiry reports token.expired."""
        service = EmailTokenService(db_session)
        token = await _issue(service, duration_minutes=30)

        with _later(31), pytest.raises(TokenExpiredError):
            await service.confirm(service_slug=_SERVICE, token=str(token))

    @pytest.mark.asyncio
    async def test_expiry_does_not_change_stored_state(self, db_session):
        """Expiry is derived; the row stays valid."""
        service = EmailTokenService(db_session)
        token = await _issue(service, duration_minutes=30)

        with _later(31), pytest.raises(TokenExpiredError):
            await service.confirm(service_slug=_SERVICE, token=str(token))

        email = await EmailRepository.get_for_service(
            db_session, service_slug=_SERVICE, token_id=token
        )
        assert email.validity == Validity.VALID.value

    @pytest.mark.asyncio
    async def test_token_confirmable_until_expiry(self, db_session):
        """Just before expiry the token still confirms."""
        service = EmailTokenService(db_session)
        token = await _issue(service, duration_minutes=30)

        with _later(29):
            details = await service.confirm(service_slug=_SERVICE, token=str(token))

        assert details == _DETAILS

    @pytest.mark.asyncio
    async def test_superseded_wins_over_expired(self, db_session):
        """A token both superseded and expired reports superseded."""
        service = EmailTokenService(db_session)
        first = await _issue(service, duration_minutes=30)
        await _issue(service, duration_minutes=120)

        with _later(60), pytest.raises(TokenSupersededError):
            await service.confirm(service_slug=_SERVICE, token=str(first))

    @pytest.mark.asyncio
    async def test_used_wins_over_expired(self, db_session):
        """A token both used and expired reports used."""
        service = EmailTokenService(db_session)
        token = await _issue(service, duration_minutes=30)
        await service.confirm(service_slug=_SERVICE, token=str(token))

        with _later(60), pytest.raises(TokenUsedError):
            await service.confirm(service_slug=_SERVICE, token=str(token))

    @pytest.mark.asyncio
    async def test_lost_race_reports_used(self, db_session):
        """If another request consumes the token first, report used."""
        service = EmailTokenService(db_session)
        token = await _issue(service)
        real_mark_used = EmailRepository.mark_used

        async def consumed_elsewhere(db, token_id):
            await real_mark_used(db, token_id)
            return False

        with (
            patch.object(
                EmailRepository,
                "mark_used",
                AsyncMock(side_effect=consumed_elsewhere),
            ),
            pytest.raises(TokenUsedError),
        ):
            await service.confirm(service_slug=_SERVICE, token=str(token))

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_token_valid(self, db_session):
        """A failed consume is rolled back and surfaced as unavailable."""
        service = EmailTokenService(db_session)
        token = await _issue(service)

        with (
            patch.object(
                EmailRepository, "mark_used", AsyncMock(side_effect=_db_down())
            ),
            pytest.raises(ServiceUnavailableError),
        ):
            await service.confirm(service_slug=_SERVICE, token=str(token))

        valid = await EmailRepository.list_valid(
            db_session, service_slug=_SERVICE, encrypted_email=_EMAIL
        )
        assert [e.id for e in valid] == [token]

    @pytest.mark.asyncio
    async def test_concurrent_confirms_consume_once(self, db_session, session_factory):
        """Of several confirmations racing on separate sessions, one wins."""
        token = await _issue(EmailTokenService(db_session))

        async def confirm_in_own_session() -> str:
            async with session_factory() as session:
                return await EmailTokenService(session).confirm(
                    service_slug=_SERVICE, token=str(token)
                )

        results = await asyncio.gather(
            *(confirm_in_own_session() for _ in range(5)),
            return_exceptions=True,
        )

        assert results.count(_DETAILS) == 1
        losers = [r for r in results if r != _DETAILS]
        assert len(losers) == 4
        assert all(isinstance(r, TokenUsedError) for r in losers)
        async with session_factory() as session:
            email = await EmailRepository.get_for_service(
                session, service_slug=_SERVICE, token_id=token
            )
        assert email is not None
        assert email.validity == Validity.USED.value
