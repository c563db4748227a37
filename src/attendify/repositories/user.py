"""User repository for Attendify backend.

Provides data access methods for User entities.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendify.models.user import User


class UserRepository:
    """Repository for User entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_wallet(self, wallet_address: str) -> User | None:
        """Retrieve user by wallet address.

        Args:
            wallet_address: Classic XRPL address (case-sensitive)

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(
            select(User).where(User.wallet_address == wallet_address)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def add(self, user: User) -> User:
        """Persist new user to database.

        Args:
            user: User entity to persist

        Returns:
            Persisted user
        """
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_or_create(
        self, wallet_address: str, is_organizer: bool = False, slots: int = 0
    ) -> tuple[User, bool]:
        """Find a user or create it with the given defaults.

        Returns:
            Tuple of (user, created)
        """
        existing = await self.get_by_wallet(wallet_address)
        if existing:
            return existing, False

        user = User(wallet_address=wallet_address, is_organizer=is_organizer, slots=slots)
        return await self.add(user), True

    async def lookup(self, query: str, limit: int = 20) -> list[User]:
        """Find users whose wallet, name or email starts with the query (case-insensitive)."""
        pattern = f"{query.lower()}%"
        result = await self.session.execute(
            select(User)
            .where(
                or_(
                    func.lower(User.wallet_address).like(pattern),
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )
            .order_by(User.wallet_address)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_organizers(self) -> list[User]:
        result = await self.session.execute(
            select(User).where(User.is_organizer == True).order_by(User.created_at)  # noqa: E712
        )
        return list(result.scalars().all())

    async def count(self, organizers_only: bool = False) -> int:
        query = select(func.count()).select_from(User)
        if organizers_only:
            query = query.where(User.is_organizer == True)  # noqa: E712
        result = await self.session.execute(query)
        return result.scalar_one()
