"""
Synthetic Data Generator

Generates realistic marketplace data for local development and demos.
Includes:
- Categories and platform users
- Businesses owned by users
- Reviews, appointments and favorites with realistic patterns
- Daily engagement counters
"""

import random
import uuid
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import polars as pl
from faker import Faker

from analytics_engine.database.models import AppointmentStatus

fake = Faker()


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = [
    "Hair Salons",
    "Barbers",
    "Nail Studios",
    "Spas",
    "Fitness",
    "Yoga",
    "Dentists",
    "Physiotherapy",
    "Tattoo Studios",
    "Pet Grooming",
    "Massage",
    "Tutoring",
]

APPOINTMENT_STATUSES = [
    (AppointmentStatus.COMPLETED, 0.50),
    (AppointmentStatus.CONFIRMED, 0.20),
    (AppointmentStatus.PENDING, 0.12),
    (AppointmentStatus.CANCELED, 0.12),
    (AppointmentStatus.NO_SHOW, 0.06),
]

# Bookings cluster around mid-morning and early evening
BOOKING_HOURS = [8, 9, 10, 11, 12, 13, 14, 15, 16, 17, 18, 19]
BOOKING_HOUR_WEIGHTS = [2, 6, 8, 6, 4, 3, 4, 4, 5, 7, 6, 2]

DURATIONS = [15, 30, 45, 60, 90, 120]


def _slugify(text: str) -> str:
    return "-".join("".join(ch.lower() if ch.isalnum() else " " for ch in text).split())


def _utcnow() -> datetime:
    return datetime.utcnow().replace(microsecond=0)


# =============================================================================
# GENERATORS
# =============================================================================

class CategoryGenerator:
    """Generate the category list"""

    def generate(self, n: Optional[int] = None) -> pl.DataFrame:
        names = CATEGORIES[:n] if n else CATEGORIES
        return pl.DataFrame([
            {"id": str(uuid.uuid4()), "name": name, "slug": _slugify(name)}
            for name in names
        ])


class UserGenerator:
    """Generate platform users"""

    def generate(self, n: int = 200) -> pl.DataFrame:
        users = []
        for _ in range(n):
            users.append({
                "id": str(uuid.uuid4()),
                "email": fake.unique.email(),
                "first_name": fake.first_name(),
                "last_name": fake.last_name(),
                "created_at": fake.date_time_between(start_date="-2y", end_date="now"),
            })
        return pl.DataFrame(users)


class BusinessGenerator:
    """Generate business profiles owned by a subset of users"""

    def __init__(self, categories_df: pl.DataFrame, users_df: pl.DataFrame):
        self.categories = categories_df.select(["id", "name"]).to_dicts()
        # Roughly one in five users runs a business
        owners = users_df["id"].to_list()
        self.owner_ids = owners[: max(1, len(owners) // 5)]

    def generate(self, n: int = 40) -> pl.DataFrame:
        businesses = []
        for _ in range(n):
            category = random.choice(self.categories)
            name = f"{fake.last_name()} {category['name'].rstrip('s')}"
            businesses.append({
                "id": str(uuid.uuid4()),
                "name": name,
                "slug": f"{_slugify(name)}-{fake.unique.random_number(digits=6)}",
                "category_id": category["id"],
                "owner_id": random.choice(self.owner_ids),
                "rating": None,
                "review_count": 0,
                "verified": random.random() < 0.6,
                "created_at": fake.date_time_between(start_date="-18M", end_date="now"),
            })
        return pl.DataFrame(businesses)


class ReviewGenerator:
    """Generate reviews skewed toward positive ratings"""

    def __init__(self, businesses_df: pl.DataFrame, users_df: pl.DataFrame):
        self.businesses = businesses_df.select(["id", "created_at"]).to_dicts()
        self.user_ids = users_df["id"].to_list()

    def generate(self, n: int = 600) -> pl.DataFrame:
        reviews = []
        for _ in range(n):
            business = random.choice(self.businesses)
            rating = random.choices([1, 2, 3, 4, 5], weights=[0.05, 0.07, 0.13, 0.35, 0.40])[0]
            reviews.append({
                "id": str(uuid.uuid4()),
                "business_id": business["id"],
                "user_id": random.choice(self.user_ids),
                "rating": rating,
                "title": fake.sentence(nb_words=4).rstrip(".") if random.random() < 0.7 else None,
                "comment": fake.paragraph(nb_sentences=2) if random.random() < 0.85 else None,
                "created_at": fake.date_time_between(start_date=business["created_at"], end_date="now"),
            })
        return pl.DataFrame(reviews)


class AppointmentGenerator:
    """Generate appointments with realistic hours and outcomes"""

    def __init__(self, businesses_df: pl.DataFrame, users_df: pl.DataFrame):
        self.business_ids = businesses_df["id"].to_list()
        self.user_ids = users_df["id"].to_list()

    def generate(self, n: int = 1500, days_back: int = 120, days_ahead: int = 30) -> pl.DataFrame:
        now = _utcnow()
        appointments = []
        for _ in range(n):
            day = now.date() + timedelta(days=random.randint(-days_back, days_ahead))
            hour = random.choices(BOOKING_HOURS, weights=BOOKING_HOUR_WEIGHTS)[0]
            start = datetime.combine(day, datetime.min.time()).replace(hour=hour, minute=random.choice([0, 15, 30, 45]))

            # Future bookings can only be pending or confirmed
            if start > now:
                status = random.choice([AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED])
            else:
                status = random.choices(
                    [s[0] for s in APPOINTMENT_STATUSES],
                    weights=[s[1] for s in APPOINTMENT_STATUSES],
                )[0]

            appointments.append({
                "id": str(uuid.uuid4()),
                "business_id": random.choice(self.business_ids),
                "user_id": random.choice(self.user_ids),
                "date": start,
                "status": status.value,
                "duration": random.choice(DURATIONS),
                "created_at": start - timedelta(days=random.randint(0, 21)),
            })
        return pl.DataFrame(appointments)


class FavoriteGenerator:
    """Generate unique (user, business) favorites"""

    def __init__(self, businesses_df: pl.DataFrame, users_df: pl.DataFrame):
        self.business_ids = businesses_df["id"].to_list()
        self.user_ids = users_df["id"].to_list()

    def generate(self, n: int = 400) -> pl.DataFrame:
        pairs = set()
        limit = min(n, len(self.business_ids) * len(self.user_ids))
        while len(pairs) < limit:
            pairs.add((random.choice(self.user_ids), random.choice(self.business_ids)))

        return pl.DataFrame([
            {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "business_id": business_id,
                "created_at": fake.date_time_between(start_date="-1y", end_date="now"),
            }
            for user_id, business_id in pairs
        ])


class DailyCounterGenerator:
    """Generate one counter row per business per recent day"""

    def __init__(self, businesses_df: pl.DataFrame):
        self.business_ids = businesses_df["id"].to_list()

    def generate(self, days: int = 30, today: Optional[date] = None) -> pl.DataFrame:
        today = today or _utcnow().date()
        rows = []
        for business_id in self.business_ids:
            popularity = random.uniform(0.2, 3.0)
            for offset in range(days):
                # Skip some days so the series has gaps
                if random.random() < 0.15:
                    continue
                views = int(random.randint(5, 60) * popularity)
                rows.append({
                    "id": str(uuid.uuid4()),
                    "business_id": business_id,
                    "date": today - timedelta(days=offset),
                    "views": views,
                    "searches": int(views * random.uniform(0.1, 0.5)),
                    "messages": int(views * random.uniform(0.0, 0.1)),
                    "bookings": int(views * random.uniform(0.0, 0.08)),
                })
        return pl.DataFrame(rows)


# =============================================================================
# MAIN GENERATOR
# =============================================================================

def denormalise_ratings(businesses_df: pl.DataFrame, reviews_df: pl.DataFrame) -> pl.DataFrame:
    """Fill the business rating/review_count columns from generated reviews"""
    stats = reviews_df.group_by("business_id").agg(
        pl.col("rating").mean().round(1).alias("avg_rating"),
        pl.len().alias("n_reviews"),
    )
    return (
        businesses_df.join(stats, left_on="id", right_on="business_id", how="left")
        .with_columns(
            pl.col("avg_rating").alias("rating"),
            pl.col("n_reviews").fill_null(0).cast(pl.Int64).alias("review_count"),
        )
        .drop(["avg_rating", "n_reviews"])
    )


class MarketplaceDataGenerator:
    """
    Main data generator orchestrator.

    Example:
        data = MarketplaceDataGenerator(seed=42).generate_all(n_users=50)
        data["businesses"].head()
    """

    def __init__(self, seed: Optional[int] = 42):
        if seed is not None:
            random.seed(seed)
            Faker.seed(seed)
        fake.unique.clear()

    def generate_all(
        self,
        n_users: int = 200,
        n_businesses: int = 40,
        n_reviews: int = 600,
        n_appointments: int = 1500,
        n_favorites: int = 400,
        counter_days: int = 30,
    ) -> Dict[str, pl.DataFrame]:
        """Generate a complete, referentially consistent dataset"""
        categories_df = CategoryGenerator().generate()
        users_df = UserGenerator().generate(n_users)
        businesses_df = BusinessGenerator(categories_df, users_df).generate(n_businesses)
        reviews_df = ReviewGenerator(businesses_df, users_df).generate(n_reviews)
        businesses_df = denormalise_ratings(businesses_df, reviews_df)

        return {
            "categories": categories_df,
            "users": users_df,
            "businesses": businesses_df,
            "reviews": reviews_df,
            "appointments": AppointmentGenerator(businesses_df, users_df).generate(n_appointments),
            "favorites": FavoriteGenerator(businesses_df, users_df).generate(n_favorites),
            "daily_counters": DailyCounterGenerator(businesses_df).generate(counter_days),
        }


# Insert order respecting foreign keys
TABLE_ORDER: List[str] = [
    "categories",
    "users",
    "businesses",
    "reviews",
    "appointments",
    "favorites",
    "daily_counters",
]
