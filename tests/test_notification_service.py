import pytest

from fanpage_service.exceptions.base_exceptions import NotFoundError
from fanpage_service.models.mongo.notification_model import NotificationDocument
from fanpage_service.models.types import NotificationType
from fanpage_service.repositories.base_repository import Pagination


@pytest.fixture
def notifications(container):
    return container.notification_service


async def seed(container, user_id, count):
    for index in range(count):
        await container.notification_repo.create(
            NotificationDocument(
                user_id=user_id,
                type=NotificationType.COMMENT,
                title=f"Comment {index}",
                content="..."
            )
        )


async def test_history_is_pruned_to_ninety_on_the_hundredth(container, notifications, user):
    await seed(container, user.id, 100)

    created = await notifications.create_notification(
        user.id, NotificationType.MESSAGE, title="Newest", content="hello"
    )

    assert await container.notification_repo.count_for_user(user.id) == 90
    page = await container.notification_repo.list_for_user(user.id, Pagination(page=1, page_size=100))
    titles = {item.title for item in page.items}
    assert created.id in {item.id for item in page.items}
    # The eleven oldest are gone
    assert "Comment 10" not in titles
    assert "Comment 11" in titles


async def test_no_pruning_below_the_limit(container, notifications, user):
    await seed(container, user.id, 98)

    await notifications.create_notification(user.id, NotificationType.COMMENT, title="t", content="c")

    assert await container.notification_repo.count_for_user(user.id) == 99


async def test_new_notification_is_emitted(notifications, user, owner_socket):
    await notifications.create_notification(
        user.id, NotificationType.MESSAGE, title="New message", content="hi", related_id="123"
    )

    frame = owner_socket.frames_for("notification")[0]
    assert frame["data"]["type"] == "message"
    assert frame["data"]["related_id"] == "123"
    assert frame["data"]["is_read"] is False


async def test_mark_read_is_scoped_to_owner(container, notifications, user):
    notification = await notifications.create_notification(
        user.id, NotificationType.COMMENT, title="t", content="c"
    )
    stranger = "65f000000000000000000000"

    with pytest.raises(NotFoundError):
        await notifications.mark_read(notification.id, stranger)

    updated = await notifications.mark_read(str(notification.id), str(user.id))
    assert updated.is_read


async def test_listing_reports_unread_count(container, notifications, user):
    await seed(container, user.id, 3)
    await notifications.mark_all_read(user.id)
    await notifications.create_notification(user.id, NotificationType.COMMENT, title="t", content="c")

    listing = await notifications.list_notifications(user.id, Pagination(page=1, page_size=2))

    assert listing["unread_count"] == 1
    assert listing["pagination"]["total"] == 4
    assert len(listing["items"]) == 2
