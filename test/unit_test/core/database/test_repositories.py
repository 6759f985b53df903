"""
Repository tests.

The base CRUD contract is checked against a mocked session; the resource
specific queries run against a real in-memory SQLite database.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlmodel import select

from tourbnt.core.database.entities.bookings import Booking
from tourbnt.core.database.entities.catalog import Category, Destination
from tourbnt.core.database.entities.comments import Comment, CommentLike
from tourbnt.core.database.entities.gallery import Gallery
from tourbnt.core.database.entities.reviews import Review
from tourbnt.core.database.entities.subscribers import Subscriber
from tourbnt.core.database.entities.tours import Tour
from tourbnt.core.database.entities.users import User
from tourbnt.core.database.repositories import (
    BookingRepository,
    CatalogRepository,
    CommentRepository,
    GalleryRepository,
    QueryBuilder,
    ReviewRepository,
    TourRepository,
    UserRepository,
)


class TestSQLModelRepositoryWithMockSession:
    @pytest.fixture
    def mock_session(self):
        session = AsyncMock()
        session.add = MagicMock()
        return session

    async def test_create_adds_commits_and_refreshes(self, mock_session):
        repo = UserRepository(mock_session)
        user = User(name="Ann", email="ann@example.com", password="hash")

        result = await repo.create(user)

        mock_session.add.assert_called_once_with(user)
        mock_session.commit.assert_awaited_once()
        mock_session.refresh.assert_awaited_once_with(user)
        assert result is user

    async def test_delete_missing_returns_false(self, mock_session):
        repo = UserRepository(mock_session)
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = result

        assert await repo.delete("missing") is False
        mock_session.delete.assert_not_called()
        mock_session.commit.assert_not_awaited()

    async def test_get_many_empty_skips_query(self, mock_session):
        assert await UserRepository(mock_session).get_many([]) == []
        mock_session.execute.assert_not_awaited()


class TestQueryBuilder:
    def test_filters_skip_none_and_unknown_columns(self):
        stmt = QueryBuilder.apply_filters(select(User), User, {"roles": "seller", "verified": None, "nope": 1})
        where = str(stmt.whereclause)
        assert "users.roles" in where
        assert "users.verified" not in where

    def test_filters_ignore_model_attributes_that_are_not_columns(self):
        stmt = QueryBuilder.apply_filters(select(User), User, {"metadata": "x", "role_list": ["admin"]})
        assert stmt.whereclause is None

    @pytest.mark.parametrize("sort_by", ["metadata", "model_dump", "role_list", "nope", "", None])
    def test_sort_falls_back_to_created_at_for_anything_but_columns(self, sort_by):
        stmt = QueryBuilder.apply_sort(select(User), User, sort_by, "desc")
        assert str(stmt).endswith("ORDER BY users.created_at DESC")

    def test_sort_without_created_at_column(self):
        stmt = QueryBuilder.apply_sort(select(Subscriber), Subscriber, "metadata")
        assert "ORDER BY" not in str(stmt)

    def test_sort_by_column(self):
        stmt = QueryBuilder.apply_sort(select(User), User, "created_at", "asc")
        assert "ORDER BY users.created_at ASC" in str(stmt)

    def test_list_filter_becomes_in_clause(self):
        stmt = QueryBuilder.apply_filters(select(User), User, {"roles": ["admin", "seller"]})
        assert " IN " in str(stmt)

    def test_sort_ignores_unknown_column(self):
        stmt = select(User)
        assert QueryBuilder.apply_sort(stmt, User, "bogus") is stmt


class TestUserRepository:
    async def test_email_lookup_is_case_insensitive(self, db_session, seller):
        repo = UserRepository(db_session)
        found = await repo.get_by_email("  Seller@Example.COM ")
        assert found is not None and found.id == seller.id

    async def test_list_query_search_and_filter(self, db_session, seller, reader):
        repo = UserRepository(db_session)
        stmt = repo.build_list_query(filters={"roles": "seller"}, search="sell", sort_order="asc")
        users = (await db_session.execute(stmt)).scalars().all()
        assert [u.id for u in users] == [seller.id]

    async def test_seller_applications(self, db_session, seller, reader):
        reader.set_seller_info({"businessName": "Reader Tours"})
        seller.set_seller_info({"businessName": "Safari Co", "isApproved": True})
        db_session.add_all([reader, seller])
        await db_session.commit()

        applications = await UserRepository(db_session).list_seller_applications()
        assert [u.id for u in applications] == [reader.id]

    async def test_count_with_filters(self, db_session, seller, reader):
        repo = UserRepository(db_session)
        assert await repo.count() == 2
        assert await repo.count({"roles": "seller"}) == 1


class TestCommentRepository:
    async def test_toggle_like(self, db_session, post, reader):
        repo = CommentRepository(db_session)
        comment = await repo.create(Comment(post_id=post.id, user_id=reader.id, text="Great"))

        assert await repo.toggle_like(comment, reader.id) is True
        assert comment.likes == 1
        assert await repo.toggle_like(comment, reader.id) is False
        assert comment.likes == 0
        likes = (await db_session.execute(select(CommentLike))).scalars().all()
        assert likes == []

    async def test_delete_with_replies(self, db_session, post, reader, seller):
        repo = CommentRepository(db_session)
        parent = await repo.create(Comment(post_id=post.id, user_id=reader.id, text="Question"))
        await repo.create(Comment(post_id=post.id, user_id=seller.id, text="Answer", parent_id=parent.id))
        other = await repo.create(Comment(post_id=post.id, user_id=reader.id, text="Unrelated"))
        await repo.toggle_like(parent, seller.id)

        removed = await repo.delete_with_replies([parent.id])

        assert removed == 2
        remaining = (await db_session.execute(select(Comment.id))).scalars().all()
        assert remaining == [other.id]
        assert (await db_session.execute(select(CommentLike))).scalars().all() == []

    async def test_unapproved_count_scoped_to_post_author(self, db_session, post, reader, seller):
        repo = CommentRepository(db_session)
        await repo.create(Comment(post_id=post.id, user_id=reader.id, text="a"))
        await repo.create(Comment(post_id=post.id, user_id=reader.id, text="b", approve=True))

        assert await repo.count_unapproved() == 1
        assert await repo.count_unapproved(post_author_id=seller.id) == 1
        assert await repo.count_unapproved(post_author_id=reader.id) == 0

    async def test_post_comments_exclude_replies(self, db_session, post, reader):
        repo = CommentRepository(db_session)
        parent = await repo.create(Comment(post_id=post.id, user_id=reader.id, text="top"))
        await repo.create(Comment(post_id=post.id, user_id=reader.id, text="reply", parent_id=parent.id))

        top_level = (await db_session.execute(repo.build_post_comments_query(post.id))).scalars().all()
        assert [c.id for c in top_level] == [parent.id]
        assert len(await repo.list_replies(parent.id)) == 1


class TestBookingRepository:
    def _booking(self, owner_id, **fields) -> Booking:
        fields.setdefault("departure_date", datetime(2025, 6, 1, tzinfo=timezone.utc))
        fields.setdefault("participants", {"adults": 1})
        return Booking(tour_id="t1", tour_title="Nile rafting", tour_owner_id=owner_id, **fields)

    async def test_stats(self, db_session, seller, reader):
        repo = BookingRepository(db_session)
        await repo.create(self._booking(seller.id, total_price=100.0, payment_status="paid", status="confirmed"))
        await repo.create(self._booking(seller.id, total_price=50.0))
        await repo.create(self._booking(reader.id, total_price=75.0, payment_status="paid"))

        stats = await repo.stats(tour_owner_id=seller.id)
        assert stats["total"] == 2
        assert stats["byStatus"] == {"confirmed": 1, "pending": 1}
        assert stats["byPaymentStatus"] == {"paid": 1, "pending": 1}
        assert stats["revenue"] == 100.0

        assert (await repo.stats())["revenue"] == 175.0

    async def test_reference_lookup_normalises(self, db_session, seller):
        repo = BookingRepository(db_session)
        booking = await repo.create(self._booking(seller.id))
        found = await repo.get_by_reference(f" {booking.booking_reference.lower()} ")
        assert found is not None and found.id == booking.id

    async def test_seats_booked_counts_one_day_and_skips_cancelled(self, db_session, seller):
        repo = BookingRepository(db_session)
        await repo.create(self._booking(seller.id, participants={"adults": 2, "children": 1}))
        await repo.create(self._booking(seller.id, participants={"adults": 4}, status="cancelled"))
        await repo.create(
            self._booking(seller.id, departure_date=datetime(2025, 6, 2, tzinfo=timezone.utc))
        )

        day = datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert await repo.seats_booked("t1", day, datetime(2025, 6, 2, tzinfo=timezone.utc)) == 3
        assert await repo.seats_booked("t2", day, datetime(2025, 6, 2, tzinfo=timezone.utc)) == 0


class TestCatalogRepository:
    async def test_preferences_and_favorites(self, db_session, seller):
        repo = CatalogRepository(db_session, Destination)
        kampala = await repo.create(Destination(name="Kampala", country="Uganda", approval_status="approved"))
        await repo.create(Destination(name="Zanzibar", country="Tanzania", approval_status="approved"))

        preference = await repo.upsert_preference(seller.id, kampala.id, is_favorite=True)
        assert preference.item_type == "destination"
        assert preference.is_in_list is False

        again = await repo.upsert_preference(seller.id, kampala.id, is_in_list=True)
        assert again.id == preference.id
        assert again.is_favorite is True

        favorites = await repo.list_favorites(seller.id)
        assert [d.name for d in favorites] == ["Kampala"]
        assert set(await repo.preferences_for(seller.id)) == {kampala.id}

    async def test_item_types_do_not_mix(self, db_session, seller):
        destinations = CatalogRepository(db_session, Destination)
        categories = CatalogRepository(db_session, Category)
        item = await destinations.create(Destination(name="Jinja", country="Uganda"))
        await destinations.upsert_preference(seller.id, item.id, is_favorite=True)

        assert await categories.preferences_for(seller.id) == {}

    async def test_visible_to_submitter(self, db_session, seller, reader):
        repo = CatalogRepository(db_session, Category)
        await repo.create(Category(name="Hiking", approval_status="approved"))
        await repo.create(Category(name="Birding", submitted_by=seller.id))

        assert [c.name for c in await repo.list_visible_to(seller.id)] == ["Birding", "Hiking"]
        assert [c.name for c in await repo.list_visible_to(reader.id)] == ["Hiking"]

    async def test_list_by_column_ignores_case(self, db_session):
        repo = CatalogRepository(db_session, Destination)
        await repo.create(Destination(name="Kampala", country="Uganda", approval_status="approved"))
        await repo.create(Destination(name="Gulu", country="Uganda"))

        assert [d.name for d in await repo.list_by_column("country", " uganda ")] == ["Kampala"]

    async def test_set_approval(self, db_session, seller):
        repo = CatalogRepository(db_session, Destination)
        item = await repo.create(Destination(name="Jinja", country="Uganda", rejection_reason="old"))

        approved = await repo.set_approval(item, "approved", seller.id)
        assert approved.approval_status == "approved"
        assert approved.approved_by == seller.id
        assert approved.approved_at is not None
        assert approved.rejection_reason is None

    async def test_delete_with_preferences(self, db_session, seller):
        repo = CatalogRepository(db_session, Destination)
        item = await repo.create(Destination(name="Jinja", country="Uganda"))
        await repo.upsert_preference(seller.id, item.id, is_favorite=True)

        await repo.delete_with_preferences(item)

        assert await repo.get_by_id(item.id) is None
        assert await repo.preferences_for(seller.id) == {}


class TestGalleryRepository:
    async def test_get_or_create_is_idempotent(self, db_session, seller):
        repo = GalleryRepository(db_session)
        first = await repo.get_or_create(seller.id)
        second = await repo.get_or_create(seller.id)
        assert first.id == second.id

    async def test_find_by_public_id(self, db_session, seller, reader):
        repo = GalleryRepository(db_session)
        gallery = await repo.get_or_create(seller.id)
        await repo.replace_collection(gallery, "videos", [{"public_id": "tourbnt/v1"}])
        await repo.create(Gallery(user_id=reader.id, images=[{"public_id": "tourbnt/i1"}]))

        found = await repo.find_by_public_id("tourbnt/v1")
        assert found is not None and found.user_id == seller.id
        assert await repo.find_by_public_id("missing") is None


class TestTourRepository:
    async def _tour(self, db_session, author, title, **fields) -> Tour:
        fields.setdefault("tour_status", "Published")
        return await TourRepository(db_session).create(
            Tour(title=title, description="A day out in the park", author_id=author.id, **fields)
        )

    async def test_category_filter_matches_whole_ids(self, db_session, seller):
        await self._tour(db_session, seller, "Crater", category_ids=["wild", "day-trip"])
        await self._tour(db_session, seller, "Wildlife", category_ids=["wildlife"])
        await self._tour(db_session, seller, "Hidden", category_ids=["wild"], tour_status="Draft")

        repo = TourRepository(db_session)
        stmt = repo.build_list_query(category="wild")
        titles = [tour.title for tour in (await db_session.execute(stmt)).scalars().all()]
        assert titles == ["Crater"]

        stmt = repo.build_list_query(category="wild", published_only=False, sort_by="title", sort_order="asc")
        titles = [tour.title for tour in (await db_session.execute(stmt)).scalars().all()]
        assert titles == ["Crater", "Hidden"]

    async def test_unique_code_and_lookup(self, db_session, seller):
        repo = TourRepository(db_session)
        tour = await self._tour(db_session, seller, "Crater", code="TR-FIXED")
        assert (await repo.get_by_code("TR-FIXED")).id == tour.id
        code = await repo.unique_code()
        assert code.startswith("TR-") and code != "TR-FIXED"

    async def test_using_fact_ignores_lookalike_values(self, db_session, seller):
        await self._tour(db_session, seller, "Uses", facts=[{"factId": "f1", "title": "Difficulty"}])
        await self._tour(db_session, seller, "Mentions", facts=[{"title": "Note", "value": "f1"}])

        tours = await TourRepository(db_session).using_fact("f1")
        assert [tour.title for tour in tours] == ["Uses"]

    async def test_increment_bookings_returns_new_count(self, db_session, seller):
        tour = await self._tour(db_session, seller, "Crater")
        repo = TourRepository(db_session)
        assert await repo.increment_bookings(tour.id) == 1
        assert await repo.increment_bookings(tour.id) == 2


class TestReviewRepository:
    async def test_rating_summary_averages_approved_only(self, db_session, seller, reader):
        tour = await TourRepository(db_session).create(
            Tour(title="Crater", description="A day out in the park", author_id=seller.id)
        )
        repo = ReviewRepository(db_session)
        await repo.create(Review(tour_id=tour.id, user_id=seller.id, rating=4.5, status="approved"))
        await repo.create(Review(tour_id=tour.id, user_id=reader.id, rating=1.0))

        assert await repo.rating_summary(tour.id) == {
            "averageRating": 4.5,
            "reviewCount": 2,
            "approvedReviewCount": 1,
        }

        await repo.refresh_tour_rating(tour)
        assert tour.average_rating == 4.5
        assert tour.review_count == 2

    async def test_rating_summary_of_unreviewed_tour(self, db_session):
        summary = await ReviewRepository(db_session).rating_summary("nothing")
        assert summary == {"averageRating": 0.0, "reviewCount": 0, "approvedReviewCount": 0}
