"""Issue an onboarding magic link for an existing practice.

Operator tool for when a link has to be (re)sent by hand, e.g. after the
recipient reports an expired or already-used link. Prints the URL; does not
send anything.

Usage:
    cd backend && python -m scripts.issue_onboarding_link <practice_id> [--ttl-seconds N]
"""

import argparse
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from onboard_api.repositories.practice_repository import PracticeRepository
from onboard_api.services.onboarding_issuance import (
    IssuedOnboardingLink,
    issue_onboarding_link,
)
from onboard_api.services.token_claims import OnboardingScope
from onboard_api.services.token_signer import TokenSigner

logger = logging.getLogger(__name__)


async def issue_for_practice(
    session: AsyncSession,
    signer: TokenSigner,
    practice_id: str,
    *,
    scope: OnboardingScope = OnboardingScope.ONBOARDING,
    ttl_seconds: int | None = None,
) -> IssuedOnboardingLink:
    """Issue and commit a link for a practice that must already exist.

    Raises:
        ValueError: If no practice has this id (TokenIssueError is also a
            ValueError).
    """
    practice = await PracticeRepository.get(session, practice_id)
    if practice is None:
        msg = f"Practice '{practice_id}' not found"
        raise ValueError(msg)

    link = await issue_onboarding_link(
        session,
        signer,
        practice_id=str(practice.id),
        scope=scope,
        ttl_seconds=ttl_seconds,
    )
    await session.commit()
    return link


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("practice_id", help="UUID of the practice")
    parser.add_argument(
        "--ttl-seconds",
        type=int,
        default=None,
        help="Link lifetime (default: ONBOARDING_TOKEN_TTL_SECONDS)",
    )
    parser.add_argument(
        "--scope",
        choices=[scope.value for scope in OnboardingScope],
        default=OnboardingScope.ONBOARDING.value,
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """CLI entry point: issue one link against the configured database."""
    from onboard_api.core.config import settings
    from onboard_api.core.database import async_session_factory, engine
    from onboard_api.core.secrets import SettingsSigningKeyProvider

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = _parse_args(argv)

    signer = TokenSigner(
        SettingsSigningKeyProvider(settings).signing_key(),
        max_ttl_seconds=settings.onboarding_token_max_ttl_seconds,
    )

    try:
        async with async_session_factory() as session:
            link = await issue_for_practice(
                session,
                signer,
                args.practice_id,
                scope=OnboardingScope(args.scope),
                ttl_seconds=args.ttl_seconds,
            )
    except ValueError as exc:
        logger.error("Not issued: %s", exc)
        return 1
    finally:
        await engine.dispose()

    logger.info(
        "Issued token %s (expires %s)", link.token_id, link.expires_at.isoformat()
    )
    print(link.url)  # noqa: T201
    return 0


if __name__ == "__main__":
    import asyncio
    import sys

    sys.exit(asyncio.run(main()))
