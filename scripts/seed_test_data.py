"""
Seed script to populate database with test data for development/testing.
Run with: python scripts/seed_test_data.py
"""

import asyncio
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

# Add parent directory to path so we can import bookswap
sys.path.insert(0, str(Path(__file__).parent.parent))

from faker import Faker
from sqlalchemy import func, select

from bookswap.core.security import hash_password
from bookswap.database import async_session_maker
from bookswap.models.book import Book
from bookswap.models.interest import InterestMark
from bookswap.models.match import Match
from bookswap.models.message import Message
from bookswap.models.profile import Profile
from bookswap.models.user import User

fake = Faker()

# Configuration
NUM_USERS = 30
BOOKS_PER_USER = (1, 6)
NUM_MATCHES = 40
NUM_INTERESTS = 80
NUM_MESSAGES = 120

TEST_EMAIL_DOMAIN = "test.bookswap.dev"

GENRES = [
    "Fiction", "Science Fiction", "Fantasy", "Mystery", "Biography",
    "History", "Poetry", "Romance", "Philosophy", "Children",
]
CONDITIONS = ["New", "Good", "Good", "Worn"]
EXCHANGE_METHODS = ["In Person", "Mail", "Both", "Both"]


def _days_ago(max_days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=random.randint(0, max_days))


async def seed_users(db) -> list[User]:
    """Create test users, each with a profile."""
    users = []

    # Password for all test users (for easy login during testing)
    test_password_hash = hash_password("Test1234!")

    print(f"Creating {NUM_USERS} test users...")

    for i in range(NUM_USERS):
        created_at = _days_ago(365)
        user = User(
            id=uuid4(),
            email=f"user{i+1}@{TEST_EMAIL_DOMAIN}",
            password_hash=test_password_hash,
            created_at=created_at,
        )
        db.add(user)
        db.add(Profile(
            user_id=user.id,
            name=fake.name(),
            bio=fake.sentence(nb_words=12) if random.random() < 0.7 else None,
            location=fake.city(),
            created_at=created_at,
            updated_at=created_at,
        ))
        users.append(user)

    await db.flush()
    print(f"  Created {len(users)} users")
    return users


async def seed_books(db, users: list[User]) -> list[Book]:
    """Create book listings for every user."""
    books = []

    for user in users:
        for _ in range(random.randint(*BOOKS_PER_USER)):
            created_at = _days_ago(180)
            book = Book(
                id=uuid4(),
                owner_id=user.id,
                title=fake.catch_phrase(),
                author=fake.name(),
                isbn=fake.isbn13() if random.random() < 0.5 else None,
                genre=random.choice(GENRES),
                condition=random.choice(CONDITIONS),
                description=fake.paragraph() if random.random() < 0.6 else None,
                location=fake.city(),
                exchange_method=random.choice(EXCHANGE_METHODS),
                created_at=created_at,
                updated_at=created_at,
            )
            db.add(book)
            books.append(book)

    await db.flush()
    print(f"  Created {len(books)} books")
    return books


async def seed_matches(db, users: list[User], books: list[Book]) -> list[Match]:
    """Create match requests between different users, at most one per requester and book."""
    matches = []
    seen = set()
    books_by_owner: dict = {}
    for book in books:
        books_by_owner.setdefault(book.owner_id, []).append(book)

    attempts = 0
    while len(matches) < NUM_MATCHES and attempts < NUM_MATCHES * 10:
        attempts += 1
        requester = random.choice(users)
        requested = random.choice(books)
        if requested.owner_id == requester.id or (requester.id, requested.id) in seen:
            continue
        seen.add((requester.id, requested.id))

        offered = None
        own_books = books_by_owner.get(requester.id)
        if own_books and random.random() < 0.6:
            offered = random.choice(own_books)

        created_at = _days_ago(60)
        match = Match(
            requester_id=requester.id,
            book_requested_id=requested.id,
            book_offered_id=offered.id if offered else None,
            status=random.choice(["pending", "pending", "accepted", "declined"]),
            created_at=created_at,
            updated_at=created_at,
        )
        db.add(match)
        matches.append(match)

    await db.flush()
    print(f"  Created {len(matches)} matches")
    return matches


async def seed_interests(db, users: list[User], books: list[Book]) -> list[InterestMark]:
    marks = []
    seen = set()

    for _ in range(NUM_INTERESTS):
        user = random.choice(users)
        book = random.choice(books)
        if book.owner_id == user.id or (user.id, book.id) in seen:
            continue
        seen.add((user.id, book.id))
        mark = InterestMark(user_id=user.id, book_id=book.id, created_at=_days_ago(60))
        db.add(mark)
        marks.append(mark)

    await db.flush()
    print(f"  Created {len(marks)} interest marks")
    return marks


async def seed_messages(db, users: list[User]) -> list[Message]:
    messages = []

    for _ in range(NUM_MESSAGES):
        sender, receiver = random.sample(users, 2)
        message = Message(
            sender_id=sender.id,
            receiver_id=receiver.id,
            content=fake.sentence(nb_words=random.randint(3, 20)),
            read=random.random() < 0.6,
            created_at=_days_ago(30),
        )
        db.add(message)
        messages.append(message)

    await db.flush()
    print(f"  Created {len(messages)} messages")
    return messages


async def main():
    print("=" * 50)
    print("Seeding test data for Bookswap")
    print("=" * 50)

    async with async_session_maker() as db:
        try:
            # Check if test users already exist
            count_result = await db.execute(
                select(func.count(User.id)).where(User.email.like(f"%@{TEST_EMAIL_DOMAIN}"))
            )
            existing_count = count_result.scalar() or 0

            if existing_count > 0:
                print(f"\nFound {existing_count} existing test users.")
                response = input("Do you want to add more test data? (y/n): ")
                if response.lower() != 'y':
                    print("Aborted.")
                    return

            print("\nCreating test data...")

            # Seed data
            users = await seed_users(db)
            books = await seed_books(db, users)
            matches = await seed_matches(db, users, books)
            marks = await seed_interests(db, users, books)
            messages = await seed_messages(db, users)

            # Commit all changes
            await db.commit()

            # Print summary
            print("\n" + "=" * 50)
            print("Summary:")
            print("=" * 50)
            print(f"  Users created: {len(users)}")
            print(f"  Books created: {len(books)}")
            print(f"  Matches created: {len(matches)}")
            print(f"    - Pending: {len([m for m in matches if m.status == 'pending'])}")
            print(f"    - Accepted: {len([m for m in matches if m.status == 'accepted'])}")
            print(f"    - Declined: {len([m for m in matches if m.status == 'declined'])}")
            print(f"  Interest marks created: {len(marks)}")
            print(f"  Messages created: {len(messages)}")
            print("\nTest user login:")
            print(f"  Email: user1@{TEST_EMAIL_DOMAIN}")
            print("  Password: Test1234!")
            print("=" * 50)

        except Exception as e:
            print(f"\nError: {e}")
            await db.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(main())
