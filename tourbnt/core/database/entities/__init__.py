"""
Database entity models.

Each module holds the table models for one resource:

- users: accounts and seller applications
- user_settings: encrypted third party credentials per user
- posts: blog posts
- comments: comments, replies and likes
- faqs: question and answer pairs
- subscribers: newsletter subscriptions
- catalog: destinations, categories and seller preferences
- tours: tour listings
- reviews: tour reviews and their replies
- facts: reusable tour fact definitions
- bookings: tour bookings
- notifications: in-app notifications
- gallery: uploaded media per user
"""

from . import (
    bookings,
    catalog,
    comments,
    facts,
    faqs,
    gallery,
    notifications,
    posts,
    reviews,
    subscribers,
    tours,
    user_settings,
    users,
)

__all__ = [
    "bookings",
    "catalog",
    "comments",
    "facts",
    "faqs",
    "gallery",
    "notifications",
    "posts",
    "reviews",
    "subscribers",
    "tours",
    "user_settings",
    "users",
]
