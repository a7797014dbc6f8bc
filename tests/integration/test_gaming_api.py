"""
test_gaming_api.py - End-to-end REST tests for the settlement endpoints.

Tests:
 - Mines start / reveal / cash-out / get over HTTP
 - Coinflip play, verify, recent and leaderboard
 - Meme Royale bet and battle listing with coin metadata
 - PumpPlay round listing and bets
 - Error rendering: {success: false, error, kind} with mapped status codes
"""

from fastapi.testclient import TestClient

from arena.auth import PermissiveVerifier
from tests.conftest import ODD_BLOCK_HASH, OTHER_WALLET, STAKE_TOKEN, WALLET, failing_transport
from tests.integration.conftest import make_server, mine_layout


def _start(client, bet=2, mines=3):
    resp = client.post("/api/gaming/mines/start", json={
        "owner_wallet": WALLET,
        "bet_amount": bet,
        "stake_token_address": STAKE_TOKEN,
        "mines_count": mines,
    })
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestSystem:

    def test_root(self, client):
        data = client.get("/").json()
        assert data["success"] is True
        assert data["environment"] == "development"

    def test_status_counts(self, client):
        _start(client)
        data = client.get("/api/status").json()
        assert data["games"]["mines_total"] == 1
        assert data["games"]["mines_active"] == 1
        assert data["rpc_configured"] is True

    def test_sign_message_template(self, client):
        data = client.get("/api/auth/message", params={"address": WALLET, "action": "cashout"}).json()
        assert data["message"].startswith("Sign this message to cash out mines game")
        assert f"Address: {WALLET}" in data["message"]

    def test_sign_message_unknown_action(self, client):
        resp = client.get("/api/auth/message", params={"address": WALLET, "action": "withdraw"})
        assert resp.status_code == 400
        assert resp.json()["kind"] == "invalid_input"


class TestMinesApi:

    def test_full_cashout_flow(self, client, server):
        started = _start(client, bet=2)
        sid = started["session_id"]
        assert started["success"] is True
        assert "mine_positions" not in started

        _, safe = mine_layout(client, server, sid)
        for tile in safe[:5]:
            resp = client.post("/api/gaming/mines/reveal",
                               json={"session_id": sid, "tile_index": tile, "owner_wallet": WALLET})
            assert resp.status_code == 200
        assert resp.json()["current_multiplier"] == 1.5

        resp = client.post("/api/gaming/mines/cashout", json={"session_id": sid, "owner_wallet": WALLET})
        assert resp.status_code == 200
        assert resp.json()["cashout_amount"] == 3.0

        again = client.post("/api/gaming/mines/cashout", json={"session_id": sid, "owner_wallet": WALLET})
        assert again.status_code == 409
        assert again.json()["kind"] == "invalid_state"
        assert again.json()["success"] is False

    def test_mine_hit_reveals_layout(self, client, server):
        sid = _start(client)["session_id"]
        mines, _ = mine_layout(client, server, sid)
        data = client.post("/api/gaming/mines/reveal",
                           json={"session_id": sid, "tile_index": mines[0], "owner_wallet": WALLET}).json()
        assert data["is_mine"] is True
        assert data["game_over"] is True
        assert sorted(data["mine_positions"]) == sorted(mines)

        session = client.get(f"/api/gaming/mines/{sid}", params={"owner_wallet": WALLET}).json()["session"]
        assert session["status"] == "lost"
        assert "cashout_amount" not in session

    def test_get_active_session_hides_mines(self, client):
        sid = _start(client)["session_id"]
        session = client.get(f"/api/gaming/mines/{sid}", params={"owner_wallet": WALLET}).json()["session"]
        assert session["status"] == "active"
        assert "mine_positions" not in session

    def test_invalid_tile(self, client):
        sid = _start(client)["session_id"]
        resp = client.post("/api/gaming/mines/reveal",
                           json={"session_id": sid, "tile_index": 25, "owner_wallet": WALLET})
        assert resp.status_code == 400
        assert resp.json()["kind"] == "invalid_tile"

    def test_unknown_or_foreign_session(self, client):
        sid = _start(client)["session_id"]
        for body in ({"session_id": 999, "owner_wallet": WALLET},
                     {"session_id": sid, "owner_wallet": OTHER_WALLET}):
            resp = client.post("/api/gaming/mines/cashout", json=body)
            assert resp.status_code == 404
            assert resp.json()["kind"] == "not_found"

    def test_bad_mines_count(self, client):
        resp = client.post("/api/gaming/mines/start", json={
            "owner_wallet": WALLET, "bet_amount": 1, "stake_token_address": STAKE_TOKEN, "mines_count": 25,
        })
        assert resp.status_code == 400
        assert resp.json()["kind"] == "invalid_input"
        assert "trace" in resp.json()

    def test_missing_fields_render_as_invalid_input(self, client):
        resp = client.post("/api/gaming/mines/start", json={"owner_wallet": WALLET})
        assert resp.status_code == 400
        body = resp.json()
        assert body == {"success": False, "error": body["error"], "kind": "invalid_input"}
        assert "bet_amount" in body["error"]


class TestCoinflipApi:

    def test_play_and_verify(self, client):
        played = client.post("/api/gaming/coinflip/play",
                             json={"owner_wallet": WALLET, "wager": 1, "user_choice": "heads"}).json()
        assert played["outcome"] == "heads"
        assert played["result"] == "win"
        assert played["provably_fair"] is True

        check = client.get(f"/api/gaming/coinflip/{played['game_id']}/verify").json()
        assert check["verified"] is True

    def test_recent_and_leaderboard(self, client):
        for choice in ("heads", "tails", "heads"):
            client.post("/api/gaming/coinflip/play",
                        json={"owner_wallet": WALLET, "wager": "2", "user_choice": choice})
        recent = client.get("/api/gaming/coinflip/recent", params={"limit": 2}).json()["games"]
        assert len(recent) == 2

        board = client.get("/api/gaming/coinflip/leaderboard").json()["leaderboard"]
        assert board[0]["wins"] == 2
        assert board[0]["losses"] == 1
        assert board[0]["total_winnings"] == 4.0

    def test_bad_choice(self, client):
        resp = client.post("/api/gaming/coinflip/play",
                           json={"owner_wallet": WALLET, "wager": 1, "user_choice": "side"})
        assert resp.status_code == 400

    def test_production_without_rpc_is_unavailable(self):
        srv = make_server(environment="production", verifier=PermissiveVerifier(), transport=failing_transport())
        with TestClient(srv.app) as c:
            resp = c.post("/api/gaming/coinflip/play",
                          json={"owner_wallet": WALLET, "wager": 1, "user_choice": "heads"})
        assert resp.status_code == 503
        assert resp.json()["kind"] == "unavailable"
        assert "trace" not in resp.json()

    def test_tails_block(self):
        srv = make_server(block_hash=ODD_BLOCK_HASH)
        with TestClient(srv.app) as c:
            resp = c.post("/api/gaming/coinflip/play",
                          json={"owner_wallet": WALLET, "wager": 1, "user_choice": "heads"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["outcome"] == "tails"
        assert data["result"] == "lose"


class TestRoyaleApi:

    def test_bet_and_battles(self, client):
        resp = client.post("/api/gaming/coins", json={"coin_id": "pepe", "name": "Pepe", "symbol": "PEPE"})
        assert resp.json()["coin"]["symbol"] == "PEPE"

        bet = client.post("/api/gaming/meme-royale/bet", json={
            "left_coin_id": "pepe", "right_coin_id": "doge", "owner_wallet": WALLET,
            "stake_amount": 1, "stake_side": "left",
        }).json()
        assert bet["success"] is True
        assert bet["winner_coin_id"] in ("pepe", "doge")
        assert bet["user_won"] == (bet["winner_coin_id"] == "pepe")

        battles = client.get("/api/gaming/meme-royale/battles").json()["battles"]
        assert battles[0]["id"] == bet["battle_id"]
        assert battles[0]["left_coin"]["name"] == "Pepe"
        assert battles[0]["right_coin"]["symbol"] == "UNK"

    def test_same_coin(self, client):
        resp = client.post("/api/gaming/meme-royale/bet", json={
            "left_coin_id": "pepe", "right_coin_id": "pepe", "owner_wallet": WALLET,
            "stake_amount": 1, "stake_side": "left",
        })
        assert resp.status_code == 400
        assert resp.json()["kind"] == "invalid_input"


class TestPumpPlayApi:

    def _register(self, client):
        for coin_id, token in (("pepe", "0x" + "11" * 20), ("doge", "0x" + "22" * 20)):
            resp = client.post("/api/gaming/coins", json={"coin_id": coin_id, "token_address": token,
                                                            "name": coin_id.title(), "symbol": coin_id.upper()})
            assert resp.status_code == 200

    def test_round_opens_and_takes_bets(self, client):
        self._register(client)
        rounds = client.get("/api/gaming/pumpplay/rounds").json()["rounds"]
        assert len(rounds) == 1
        current = rounds[0]
        assert current["status"] == "open"
        assert sorted(current["candidates"]) == ["doge", "pepe"]

        resp = client.post("/api/gaming/pumpplay/bet", json={
            "round_id": current["id"], "owner_wallet": WALLET, "coin_id": "pepe", "amount": "2.5",
        })
        assert resp.status_code == 200, resp.text
        assert resp.json()["total_pool"] == 2.5

        listed = client.get("/api/gaming/pumpplay/rounds").json()["rounds"][0]
        assert listed["total_pool"] == 2.5
        assert listed["bets"] == [{"coin_id": "pepe", "total": 2.5}]
        assert client.get("/api/status").json()["games"]["pumpplay_bets"] == 1

    def test_unknown_round(self, client):
        resp = client.post("/api/gaming/pumpplay/bet", json={
            "round_id": 42, "owner_wallet": WALLET, "coin_id": "pepe", "amount": 1,
        })
        assert resp.status_code == 404
        assert resp.json()["kind"] == "not_found"

    def test_non_candidate_coin(self, client):
        self._register(client)
        round_id = client.get("/api/gaming/pumpplay/rounds").json()["rounds"][0]["id"]
        resp = client.post("/api/gaming/pumpplay/bet", json={
            "round_id": round_id, "owner_wallet": WALLET, "coin_id": "wif", "amount": 1,
        })
        assert resp.status_code == 400
        assert resp.json()["kind"] == "invalid_input"


class TestCurveApi:

    def test_quote_requires_rpc(self):
        srv = make_server()
        srv.quoter = None
        with TestClient(srv.app) as c:
            resp = c.get(f"/api/curve/{STAKE_TOKEN}/quote", params={"side": "buy", "amount": "1"})
        assert resp.status_code == 503
