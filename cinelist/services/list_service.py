import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime

from cinelist.errors import (
    DomainError,
    ErrorKind,
    list_not_found,
    movie_not_in_list,
    not_a_member,
    validation_failed,
)
from cinelist.models.list_member import ListMember, ListRole
from cinelist.models.list_movie import ListMovie, MovieStatus
from cinelist.models.list_movie_user_data import ListMovieUserData
from cinelist.models.movie import Movie
from cinelist.models.movie_list import MovieList
from cinelist.services.tmdb import (
    MEDIA_TYPES,
    CatalogClient,
    CatalogNotFoundError,
    CatalogUnavailableError,
)
from cinelist.stores.list_movie_store import ListMovieAlreadyExists, ListMovieStore
from cinelist.stores.membership_store import (
    InviteCodeCollision,
    MembershipStore,
    NotListOwner,
)
from cinelist.stores.movie_store import MovieStore

logger = logging.getLogger(__name__)

INVITE_CODE_LENGTH = 10
INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_INVITE_CODE_ATTEMPTS = 10
NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000
NOTES_MAX_LENGTH = 2000
RATING_MIN, RATING_MAX = 1, 10
SEARCH_QUERY_MIN_LENGTH, SEARCH_QUERY_MAX_LENGTH = 2, 100
DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE = 50, 100


def generate_invite_code() -> str:
    return "".join(
        secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH)
    )


def normalize_invite_code(code: str) -> str:
    """Uppercase and shape-check an invite code before any lookup."""
    normalized = (code or "").strip().upper()
    if len(normalized) != INVITE_CODE_LENGTH or any(
        c not in INVITE_CODE_ALPHABET for c in normalized
    ):
        raise validation_failed(
            "INVALID_INVITE_CODE", "invite_code must be 10 alphanumeric characters"
        )
    return normalized


def require_member(
    memberships: MembershipStore, list_id: int, user_id: int
) -> ListMember:
    """Return the caller's membership of a live list or raise a DomainError."""
    if memberships.find_by_id(list_id) is None:
        raise list_not_found()
    membership = memberships.find_membership(list_id, user_id)
    if membership is None or membership.role not in (
        ListRole.OWNER.value,
        ListRole.PARTICIPANT.value,
    ):
        raise not_a_member()
    return membership


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    limit = DEFAULT_PAGE_SIZE if limit is None else min(max(limit, 1), MAX_PAGE_SIZE)
    offset = 0 if offset is None else max(offset, 0)
    return limit, offset


@dataclass
class JoinResult:
    movie_list: MovieList
    role: ListRole
    already_member: bool
    member_count: int


@dataclass
class UserListsPage:
    memberships: list[ListMember]
    member_counts: dict[int, int]
    movie_counts: dict[int, int]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.memberships) < self.total


@dataclass
class EntrySnapshot:
    """Detached copy of an overlay row, taken before it is mutated."""

    user_id: int
    rating: int | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def of(cls, entry: ListMovieUserData | None) -> "EntrySnapshot | None":
        if entry is None:
            return None
        return cls(
            user_id=entry.user_id,
            rating=entry.rating,
            notes=entry.notes,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


@dataclass
class MovieUpdateResult:
    list_movie: ListMovie
    movie: Movie
    old_status: MovieStatus
    old_entry: EntrySnapshot | None
    new_entry: ListMovieUserData | None
    average_rating: float | None


class ListService:
    """List lifecycle, membership and shared movie state.

    Every content operation first resolves the list (soft-deleted lists are
    treated as missing) and the caller's membership.
    """

    def __init__(
        self,
        memberships: MembershipStore,
        list_movies: ListMovieStore,
        movies: MovieStore,
        catalog: CatalogClient | None = None,
    ) -> None:
        self.memberships = memberships
        self.overlay = list_movies
        self.movies = movies
        self.catalog = catalog

    def require_member(self, list_id: int, user_id: int) -> ListMember:
        return require_member(self.memberships, list_id, user_id)

    def require_list_movie(self, list_id: int, movie_id: int) -> ListMovie:
        list_movie = self.overlay.find_list_movie(list_id, movie_id)
        if list_movie is None:
            raise movie_not_in_list()
        return list_movie

    # List lifecycle

    def create_list(
        self, name: str, description: str | None, owner_id: int
    ) -> MovieList:
        name = (name or "").strip()
        if not name or len(name) > NAME_MAX_LENGTH:
            raise validation_failed(
                "INVALID_NAME", "name is required and must be 1-255 characters"
            )
        if description is not None:
            description = description.strip() or None
            if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
                raise validation_failed(
                    "INVALID_DESCRIPTION", "description must be at most 1000 characters"
                )

        for attempt in range(1, MAX_INVITE_CODE_ATTEMPTS + 1):
            code = generate_invite_code()
            if self.memberships.invite_code_exists(code):
                logger.warning("invite code collision on pre-check attempt=%d", attempt)
                continue
            movie_list = MovieList(
                name=name,
                description=description,
                invite_code=code,
                created_by=owner_id,
            )
            try:
                self.memberships.create_with_owner(movie_list, owner_id)
            except InviteCodeCollision:
                logger.warning("invite code collision on insert attempt=%d", attempt)
                continue
            logger.info("list created list_id=%s owner_id=%s", movie_list.id, owner_id)
            return movie_list

        logger.error("invite code generation exhausted owner_id=%s", owner_id)
        raise DomainError(
            ErrorKind.RESOURCE_EXHAUSTED,
            "INVITE_CODE_EXHAUSTED",
            "Failed to generate a unique invite code.",
        )

    def join_list_by_invite_code(self, code: str, user_id: int) -> JoinResult:
        code = normalize_invite_code(code)
        movie_list = self.memberships.find_by_invite_code(code)
        if movie_list is None:
            raise DomainError(
                ErrorKind.NOT_FOUND,
                "INVITE_CODE_NOT_FOUND",
                "List not found.",
                ["No active list found with provided invite code"],
            )

        membership = self.memberships.find_membership(movie_list.id, user_id)
        if membership is not None:
            already_member, role = True, ListRole(membership.role)
        elif self.memberships.add_participant_if_not_exists(movie_list.id, user_id):
            already_member, role = False, ListRole.PARTICIPANT
            logger.info("list joined list_id=%s user_id=%s", movie_list.id, user_id)
        else:
            membership = self.memberships.find_membership(movie_list.id, user_id)
            already_member, role = True, ListRole(membership.role)

        return JoinResult(
            movie_list=movie_list,
            role=role,
            already_member=already_member,
            member_count=self.memberships.count_members(movie_list.id),
        )

    def delete_list(self, list_id: int, user_id: int) -> None:
        if self.memberships.find_by_id(list_id) is None:
            raise list_not_found()
        try:
            self.memberships.delete_list_if_owner(list_id, user_id)
        except NotListOwner:
            raise DomainError(
                ErrorKind.FORBIDDEN,
                "NOT_LIST_OWNER",
                "Access denied.",
                ["Only the list owner can delete this list"],
            )
        logger.info("list deleted list_id=%s user_id=%s", list_id, user_id)

    def leave_list(self, list_id: int, user_id: int) -> None:
        membership = self.require_member(list_id, user_id)
        if membership.is_owner:
            raise DomainError(
                ErrorKind.FORBIDDEN,
                "OWNER_CANNOT_LEAVE",
                "Owner cannot leave.",
                ["The owner cannot leave the list. Delete the list instead."],
            )
        self.memberships.remove_member(list_id, user_id)
        logger.info("list left list_id=%s user_id=%s", list_id, user_id)

    def list_user_lists(
        self,
        user_id: int,
        role: ListRole | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> UserListsPage:
        limit, offset = clamp_page(limit, offset)
        memberships = self.memberships.find_user_memberships(user_id, role, limit, offset)
        list_ids = [m.list_id for m in memberships]
        return UserListsPage(
            memberships=memberships,
            member_counts=self.memberships.count_members_batch(list_ids),
            movie_counts=self.memberships.count_movies_batch(list_ids),
            total=self.memberships.count_user_memberships(user_id, role),
            limit=limit,
            offset=offset,
        )

    # Movies within a list

    def _resolve_movie(self, media_id: int, media_type: str) -> Movie:
        movie = self.movies.find_by_id(media_id)
        if movie is not None:
            if movie.media_type != media_type:
                # Movies and shows share the id space of the local catalog.
                raise DomainError(
                    ErrorKind.CONFLICT,
                    "MEDIA_TYPE_MISMATCH",
                    "Media id already stored with another type.",
                    [f"{media_id} is stored as {movie.media_type}"],
                )
            return movie
        try:
            title = self.catalog.resolve_title(media_id, media_type)
        except CatalogNotFoundError:
            raise DomainError(
                ErrorKind.NOT_FOUND, "MEDIA_NOT_FOUND", "Media not found."
            )
        except CatalogUnavailableError as exc:
            raise DomainError(
                ErrorKind.UPSTREAM_UNAVAILABLE,
                "CATALOG_UNAVAILABLE",
                "Catalog lookup failed.",
                [str(exc)],
            )
        return self.movies.create_with_genres(title)

    def add_media_to_list(
        self, list_id: int, user_id: int, media_id: int, media_type: str
    ) -> tuple[ListMovie, Movie]:
        if media_type not in MEDIA_TYPES:
            raise validation_failed(
                "INVALID_MEDIA_TYPE", "media_type must be 'movie' or 'tv'"
            )
        self.require_member(list_id, user_id)
        movie = self._resolve_movie(media_id, media_type)

        already = DomainError(
            ErrorKind.CONFLICT,
            "MOVIE_ALREADY_IN_LIST",
            "Series already in list." if media_type == "tv" else "Movie already in list.",
        )
        if self.overlay.list_movie_exists(list_id, movie.id):
            raise already
        try:
            list_movie = self.overlay.add_movie_to_list(list_id, movie.id, user_id)
        except ListMovieAlreadyExists:
            raise already
        return list_movie, movie

    def remove_movie_from_list(self, list_id: int, user_id: int, movie_id: int) -> Movie:
        self.require_member(list_id, user_id)
        list_movie = self.require_list_movie(list_id, movie_id)
        movie = list_movie.movie
        self.overlay.remove_movie(list_id, movie_id)
        return movie

    def update_movie(
        self,
        list_id: int,
        user_id: int,
        movie_id: int,
        status: MovieStatus | None = None,
        rating: int | None = None,
        rating_provided: bool = False,
        notes: str | None = None,
        notes_provided: bool = False,
    ) -> MovieUpdateResult:
        """Change the shared status and/or the caller's own rating and notes.

        The returned ``old_*`` values are captured before anything is written.
        """
        self.require_member(list_id, user_id)
        if rating_provided and rating is not None and not (
            RATING_MIN <= rating <= RATING_MAX
        ):
            raise validation_failed("INVALID_RATING", "rating must be between 1 and 10")
        if notes_provided and notes is not None:
            notes = notes.strip() or None
            if notes is not None and len(notes) > NOTES_MAX_LENGTH:
                raise validation_failed(
                    "INVALID_NOTES", "notes must be at most 2000 characters"
                )

        list_movie = self.require_list_movie(list_id, movie_id)
        old_status = MovieStatus(list_movie.status)
        overlay_change = rating_provided or notes_provided
        old_entry = None
        if overlay_change:
            old_entry = EntrySnapshot.of(
                self.overlay.find_user_data(list_id, movie_id, user_id)
            )

        if status is not None:
            list_movie = self.overlay.update_status(list_id, movie_id, status)

        new_entry = None
        if overlay_change:
            new_entry = self.overlay.upsert_user_data(
                list_id, movie_id, user_id,
                rating, rating_provided, notes, notes_provided,
            )

        average_rating = None
        if rating_provided:
            average_rating = self.overlay.get_average_rating(list_id, movie_id)
        list_movie = self.overlay.reload(list_movie)

        return MovieUpdateResult(
            list_movie=list_movie,
            movie=list_movie.movie,
            old_status=old_status,
            old_entry=old_entry,
            new_entry=new_entry,
            average_rating=average_rating,
        )

    def list_movies(
        self, list_id: int, user_id: int, status: MovieStatus | None = None
    ) -> list[ListMovie]:
        self.require_member(list_id, user_id)
        return self.overlay.find_list_movies(list_id, status)

    def search_list_movies(
        self,
        list_id: int,
        user_id: int,
        query: str,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[ListMovie], int, int, int]:
        query = (query or "").strip()
        if not SEARCH_QUERY_MIN_LENGTH <= len(query) <= SEARCH_QUERY_MAX_LENGTH:
            raise validation_failed(
                "INVALID_QUERY", "Query must be between 2 and 100 characters"
            )
        self.require_member(list_id, user_id)
        limit, offset = clamp_page(limit, offset)
        items, total = self.overlay.search_list_movies(list_id, query, limit, offset)
        return items, total, limit, offset

    def reorder_movies(
        self, list_id: int, user_id: int, order_map: dict[int, int]
    ) -> None:
        if not order_map:
            raise validation_failed(
                "EMPTY_ORDER", "movie_orders array cannot be empty"
            )
        self.require_member(list_id, user_id)
        self.overlay.update_orders(list_id, order_map)
