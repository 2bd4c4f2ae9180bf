"""
Web-of-trust ledger: vouching rules and score recomputation.

Guards against:
1. Self-vouching at any trust level
2. Vouching below the trust floor (29 refused, 30 allowed)
3. Duplicate vouches inflating trust
4. Scores drifting from 10 x incoming vouches
"""
import pytest

from kuurier.core import trust
from kuurier.core.errors import InsufficientTrustError, SelfVouchError, UserNotFoundError
from kuurier.models import User, Vouch, VouchType


def _score(db, user_id):
    db.expire_all()
    return db.query(User.trust_score).filter(User.id == user_id).scalar()


def _assert_score_matches_ledger(db, user_id):
    assert _score(db, user_id) == trust.trust_score_for(trust.count_vouches_received(db, user_id))


def test_self_vouch_refused_even_with_high_trust(make_user, db):
    user, _ = make_user(trust_score=500)
    with pytest.raises(SelfVouchError):
        trust.vouch(db, user.id, user.id)


def test_trust_29_cannot_vouch(make_user, db):
    voucher, _ = make_user(trust_score=29)
    vouchee, _ = make_user()

    with pytest.raises(InsufficientTrustError) as exc:
        trust.vouch(db, voucher.id, vouchee.id)

    assert exc.value.required == 30
    assert exc.value.current == 29
    assert exc.value.to_dict()["error"] == "insufficient trust to vouch for others"


def test_trust_30_can_vouch(make_user, db):
    voucher, _ = make_user(trust_score=30)
    vouchee, _ = make_user()

    assert trust.vouch(db, voucher.id, vouchee.id) is True
    assert _score(db, vouchee.id) == 10

    edge = db.query(Vouch).one()
    assert edge.vouch_type is VouchType.MANUAL


def test_vouch_for_unknown_user(make_user, db):
    voucher, _ = make_user(trust_score=30)
    with pytest.raises(UserNotFoundError):
        trust.vouch(db, voucher.id, "no-such-user")


def test_duplicate_vouch_is_a_noop(make_user, db):
    voucher, _ = make_user(trust_score=40)
    vouchee, _ = make_user()

    assert trust.vouch(db, voucher.id, vouchee.id) is True
    assert trust.vouch(db, voucher.id, vouchee.id) is False

    assert db.query(Vouch).count() == 1
    assert _score(db, vouchee.id) == 10


def test_duplicate_after_invite_vouch_collapses(make_user, db):
    """An invite vouch and a later manual vouch share the same unique pair."""
    voucher, _ = make_user(trust_score=40)
    vouchee, _ = make_user()

    trust.record_vouch(db, voucher.id, vouchee.id, VouchType.INVITE)
    db.commit()

    assert trust.vouch(db, voucher.id, vouchee.id) is False
    edge = db.query(Vouch).one()
    assert edge.vouch_type is VouchType.INVITE


def test_score_tracks_ledger_after_each_vouch(make_user, db):
    vouchee, _ = make_user()
    vouchers = [make_user(trust_score=30)[0] for _ in range(4)]

    for i, voucher in enumerate(vouchers, start=1):
        trust.vouch(db, voucher.id, vouchee.id)
        assert _score(db, vouchee.id) == 10 * i
        _assert_score_matches_ledger(db, vouchee.id)


def test_recompute_overwrites_stale_score(make_user, db):
    """Recompute reads the ledger, never applies a delta to the stored score."""
    vouchee, _ = make_user(trust_score=999)
    voucher, _ = make_user(trust_score=30)

    trust.record_vouch(db, voucher.id, vouchee.id, VouchType.MANUAL)
    trust.recompute_trust(db, vouchee.id)
    db.commit()

    assert _score(db, vouchee.id) == 10


def test_list_vouches(make_user, db):
    me, _ = make_user(trust_score=30)
    friend, _ = make_user(trust_score=30)
    stranger, _ = make_user()

    # Vouch first: friend's vouch recomputes me down to 10
    trust.vouch(db, me.id, stranger.id)
    trust.vouch(db, friend.id, me.id)

    result = trust.list_vouches(db, me.id)
    assert [v["from"] for v in result["received"]] == [friend.id]
    assert [v["to"] for v in result["given"]] == [stranger.id]
    assert result["received"][0]["type"] == "manual"
