"""News service: admin editing and gated reading."""

import pytest
from structlog.testing import capture_logs

from pronosite.access.visibility import ViewerTier
from pronosite.errors import AuthorizationError, NotFoundError, ValidationError
from pronosite.models import NewsCategory, PickStatus, Visibility
from pronosite.service import news as service
from pronosite.storage.bankroll import fetch_bankroll

ADMIN = ViewerTier.ADMIN


def test_create_and_read(temp_db):
    article = service.create_article(
        temp_db,
        ADMIN,
        title="  Derby preview ",
        content="Both sides in form.",
        category="analysis",
        created_by="editor",
    )
    assert article.title == "Derby preview"
    assert article.category == NewsCategory.ANALYSIS
    assert article.status == PickStatus.PENDING
    assert article.visibility == Visibility.PUBLIC
    assert service.get_article(temp_db, ViewerTier.ANONYMOUS, article.article_id) == article


def test_restricted_article_hidden_from_non_vip(temp_db):
    public = service.create_article(temp_db, ADMIN, title="Open", content="x")
    vip = service.create_article(temp_db, ADMIN, title="Insider", content="y", visibility=Visibility.RESTRICTED)
    assert [a.article_id for a in service.list_articles(temp_db, ViewerTier.AUTHENTICATED)] == [public.article_id]
    assert {a.article_id for a in service.list_articles(temp_db, ViewerTier.VIP)} == {
        public.article_id,
        vip.article_id,
    }
    with pytest.raises(NotFoundError):
        service.get_article(temp_db, ViewerTier.AUTHENTICATED, vip.article_id)


def test_update_only_given_fields(temp_db):
    article = service.create_article(temp_db, ADMIN, title="Old", content="Body", image_url="http://img/1.png")
    updated = service.update_article(temp_db, ADMIN, article.article_id, title="New")
    assert updated.title == "New"
    assert updated.content == "Body"
    assert updated.image_url == "http://img/1.png"
    cleared = service.update_article(temp_db, ADMIN, article.article_id, image_url="")
    assert cleared.image_url is None
    with pytest.raises(ValidationError):
        service.update_article(temp_db, ADMIN, article.article_id, title="   ")
    with pytest.raises(NotFoundError):
        service.update_article(temp_db, ADMIN, 999, title="x")


def test_status_is_editorial_only(temp_db, ledger):
    article = service.create_article(temp_db, ADMIN, title="Tip", content="Take the over")
    before = fetch_bankroll(temp_db)
    marked = service.set_article_status(temp_db, ADMIN, article.article_id, "won")
    assert marked.status == PickStatus.WON
    assert fetch_bankroll(temp_db).totals() == before.totals()
    with pytest.raises(ValidationError):
        service.set_article_status(temp_db, ADMIN, article.article_id, "void")


def test_visibility_and_delete(temp_db):
    article = service.create_article(temp_db, ADMIN, title="Tip", content="c")
    moved = service.set_article_visibility(temp_db, ADMIN, article.article_id, Visibility.RESTRICTED)
    assert moved.visibility == Visibility.RESTRICTED
    service.delete_article(temp_db, ADMIN, article.article_id)
    with pytest.raises(NotFoundError):
        service.get_article(temp_db, ADMIN, article.article_id)
    with pytest.raises(NotFoundError):
        service.delete_article(temp_db, ADMIN, article.article_id)


def test_create_rejects_blank_and_unknown(temp_db):
    with pytest.raises(ValidationError):
        service.create_article(temp_db, ADMIN, title="", content="c")
    with pytest.raises(ValidationError):
        service.create_article(temp_db, ADMIN, title="t", content="c", category="gossip")


@pytest.mark.parametrize("tier", [ViewerTier.ANONYMOUS, ViewerTier.AUTHENTICATED, ViewerTier.VIP])
def test_non_admin_cannot_edit(temp_db, tier):
    article = service.create_article(temp_db, ADMIN, title="t", content="c")
    with pytest.raises(AuthorizationError):
        service.create_article(temp_db, tier, title="t", content="c")
    with pytest.raises(AuthorizationError):
        service.update_article(temp_db, tier, article.article_id, title="x")
    with pytest.raises(AuthorizationError):
        service.set_article_status(temp_db, tier, article.article_id, PickStatus.WON)
    with pytest.raises(AuthorizationError):
        service.delete_article(temp_db, tier, article.article_id)


def test_rejected_edits_are_logged(temp_db):
    article = service.create_article(temp_db, ADMIN, title="t", content="c")
    with capture_logs() as logs:
        with pytest.raises(AuthorizationError):
            service.create_article(temp_db, ViewerTier.VIP, title="t", content="c")
        with pytest.raises(NotFoundError):
            service.delete_article(temp_db, ADMIN, article.article_id + 100)
    rejected = [e for e in logs if e["log_level"] == "warning"]
    assert rejected[0]["event"] == "article_create_rejected"
    assert rejected[0]["code"] == "forbidden"
    assert rejected[1]["event"] == "article_delete_rejected"
    assert rejected[1]["code"] == "not_found"
