#!/usr/bin/env python3
"""
Demo script for hustle data.

This script walks through the cached repository layer with two users on the
in-memory backends: posting a service, reading it through the cache, leaving
a review and messaging about the post.
"""

import asyncio

from hustle_data import ServiceContainer, StaticIdentityProvider
from hustle_data.entities import ServiceCategory, ServicePost, User


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def demo_profiles(container: ServiceContainer, identity: StaticIdentityProvider) -> None:
    """Register two users and follow one from the other."""
    print_section("Profiles")

    for user_id, name, provider in (("maya", "Maya", True), ("leo", "Leo", False)):
        identity.sign_in(user_id)
        await container.users.create(
            User(name=name, email=f"{user_id}@example.com", is_service_provider=provider)
        )
        print(f"  ✓ Registered: {name}")

    await container.users.follow_user("maya")
    maya = await container.users.fetch_by_id("maya")
    print(f"  Leo follows Maya, Maya now has {len(maya.followers)} follower(s)")


async def demo_cached_reads(container: ServiceContainer, identity: StaticIdentityProvider) -> str:
    """Create a post and read it twice to show the cache at work."""
    print_section("Cached Reads")

    identity.sign_in("maya")
    post_id = await container.posts.create(
        ServicePost(
            user_id="",
            title="Garden clean-up",
            description="Weeding, pruning and green waste removal",
            category=ServiceCategory.LANDSCAPING,
            price=60,
            tags=["garden", "weekend"],
        )
    )
    print(f"\n📝 Created post {post_id}")

    for attempt in (1, 2):
        post = await container.posts.fetch_by_id(post_id)
        print(f"  Read {attempt}: '{post.title}' by {post.user_name}")

    stats = container.cache.get_stats()
    print(f"\n📊 Cache: {stats['total_entries']} entries, {stats['hits']} hits, {stats['misses']} misses")

    results = await container.posts.search("GARDEN")
    print(f"🔍 Search 'GARDEN': {[post.title for post in results]}")
    return post_id


async def demo_reviews(container: ServiceContainer, identity: StaticIdentityProvider) -> None:
    """Review a provider and read the recomputed rating."""
    print_section("Reviews")

    identity.sign_in("leo")
    await container.reviews.create_review("maya", 5, "Tidy, quick and friendly")

    stats = await container.reviews.get_review_stats("maya")
    maya = await container.users.fetch_by_id("maya")
    print(f"  Average: {stats.average:.1f} from {stats.count} review(s)")
    print(f"  Profile rating: {maya.rating:.1f}")


async def demo_messages(container: ServiceContainer, identity: StaticIdentityProvider, post_id: str) -> None:
    """Message the post's author and check the inbox on both sides."""
    print_section("Messages")

    identity.sign_in("leo")
    conversation_id = await container.messages.find_or_create_conversation("maya")
    await container.messages.send_message(conversation_id, "Are you free on Saturday?")
    print(f"\n💬 Leo wrote to Maya about post {post_id}")

    identity.sign_in("maya")
    print(f"  Maya's unread notifications: {await container.notifications.get_unread_count()}")
    marked = await container.messages.mark_messages_as_read(conversation_id)
    print(f"  Maya read {marked} message(s)")


async def run() -> None:
    identity = StaticIdentityProvider()
    container = ServiceContainer.create_in_memory(identity=identity)
    try:
        await demo_profiles(container, identity)
        post_id = await demo_cached_reads(container, identity)
        await demo_reviews(container, identity)
        await demo_messages(container, identity, post_id)
    finally:
        await container.close()


def main() -> None:
    """Run all demos."""
    print("\n🚀 Hustle Data Demo")
    print("=" * 70)
    print("This demo showcases the cached repositories on in-memory backends")

    try:
        asyncio.run(run())

        print("\n" + "=" * 70)
        print("✅ Demo completed successfully!")
        print("=" * 70)

    except Exception as e:
        print(f"\n❌ Error: {e}")


if __name__ == "__main__":
    main()
