"""Seed the blog database with users, categories, tags, articles and comments."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timedelta

from sqlalchemy import insert

from blog.database import Base, engine, transaction
from blog.models import Article, ArticleTag, Category, Comment, Status, Tag, User

CATEGORIES = ["Travel", "Food", "Technology", "Music", "Books"]
TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "photography",
        "recipes", "guitar", "novels", "hiking", "cities", "history"]


async def seed(small: bool = False):
    num_users = 5 if small else 20
    num_articles = 30 if small else 1000
    max_comments = 2 if small else 6

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with transaction() as session:
        categories = [Category(title=title) for title in CATEGORIES]
        tags = [Tag(title=title) for title in TAGS]
        users = [
            User(name=f"Author {i}", email=f"author{i}@example.com", is_admin=(i == 0))
            for i in range(num_users)
        ]
        session.add_all(categories + tags + users)
        await session.flush()

        now = datetime.now().replace(microsecond=0)
        articles = []
        for i in range(num_articles):
            topic = random.choice(TAGS)
            articles.append(
                Article(
                    title=f"Notes #{i}: {topic}",
                    description=f"A short piece about {topic}.",
                    content=f"Everything worth knowing about {topic}. " * 30,
                    date=now - timedelta(days=random.randint(0, 365), minutes=i),
                    viewed=random.randint(0, 5000),
                    status=Status.ALLOW if random.random() > 0.1 else Status.DISALLOW,
                    user_id=random.choice(users).id,
                    category_id=random.choice(categories).id if random.random() > 0.1 else None,
                )
            )
        session.add_all(articles)
        await session.flush()
        print(f"  Created {len(articles)} articles")

        links = [
            {"article_id": article.id, "tag_id": tag.id}
            for article in articles
            for tag in random.sample(tags, k=random.randint(0, 4))
        ]
        if links:
            await session.execute(insert(ArticleTag), links)

        comments = [
            Comment(
                text=f"Thanks for writing about {random.choice(TAGS)}!",
                user_id=random.choice(users).id,
                article_id=article.id,
                status=Status.ALLOW if random.random() > 0.3 else Status.DISALLOW,
            )
            for article in articles
            for _ in range(random.randint(0, max_comments))
        ]
        session.add_all(comments)

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Tag links: {len(links)}")
    print(f"  Comments: {len(comments)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset (30 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
