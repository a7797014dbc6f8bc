SCHEMA_VERSION = 3

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version   INTEGER NOT NULL,
    applied_at REAL NOT NULL
);

-- Mines: one row per game session, never deleted
CREATE TABLE IF NOT EXISTS mines_sessions (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_wallet        TEXT NOT NULL,
    bet_amount          TEXT NOT NULL,
    stake_token_address TEXT NOT NULL,
    mines_count         INTEGER NOT NULL CHECK (mines_count BETWEEN 1 AND 24),
    grid_json           TEXT NOT NULL,
    revealed_json       TEXT NOT NULL DEFAULT '[]',
    status              TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'won', 'lost', 'cashed_out')),
    current_multiplier  TEXT NOT NULL DEFAULT '1.0',
    cashout_amount      TEXT,
    version             INTEGER NOT NULL DEFAULT 0,
    tx_hash             TEXT,
    created_at          INTEGER NOT NULL,
    completed_at        INTEGER
);

-- Coinflip: append-only ledger of completed flips
CREATE TABLE IF NOT EXISTS coinflip_games (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_wallet  TEXT NOT NULL,
    wager         TEXT NOT NULL,
    user_choice   TEXT NOT NULL CHECK (user_choice IN ('heads', 'tails')),
    outcome       TEXT NOT NULL CHECK (outcome IN ('heads', 'tails')),
    result        TEXT NOT NULL CHECK (result IN ('win', 'lose')),
    seed_source   TEXT NOT NULL,
    block_number  INTEGER,
    block_hash    TEXT,
    provably_fair INTEGER NOT NULL DEFAULT 1,
    token_address TEXT,
    tx_hash       TEXT,
    created_at    INTEGER NOT NULL
);

-- Meme Royale: judged battles and the stakes placed on them
CREATE TABLE IF NOT EXISTS royale_battles (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    left_coin_id   TEXT NOT NULL,
    right_coin_id  TEXT NOT NULL,
    left_score     REAL NOT NULL,
    right_score    REAL NOT NULL,
    winner_coin_id TEXT NOT NULL,
    judge          TEXT NOT NULL,
    created_at     INTEGER NOT NULL,
    CHECK (left_coin_id != right_coin_id)
);

CREATE TABLE IF NOT EXISTS royale_stakes (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    battle_id    INTEGER NOT NULL,
    owner_wallet TEXT NOT NULL,
    stake_side   TEXT NOT NULL CHECK (stake_side IN ('left', 'right')),
    stake_amount TEXT NOT NULL,
    won          INTEGER NOT NULL,
    tx_hash      TEXT,
    created_at   INTEGER NOT NULL,
    FOREIGN KEY (battle_id) REFERENCES royale_battles(id)
);

-- PumpPlay: timed rounds where wallets back one of several candidate coins
CREATE TABLE IF NOT EXISTS pumpplay_rounds (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    candidates_json TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'open' CHECK (status IN ('open', 'closed')),
    total_pool      TEXT NOT NULL DEFAULT '0',
    created_at      INTEGER NOT NULL,
    ends_at         INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS pumpplay_bets (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    round_id      INTEGER NOT NULL,
    owner_wallet  TEXT NOT NULL,
    coin_id       TEXT NOT NULL,
    amount        TEXT NOT NULL,
    token_address TEXT,
    tx_hash       TEXT,
    created_at    INTEGER NOT NULL,
    FOREIGN KEY (round_id) REFERENCES pumpplay_rounds(id)
);

-- Payouts: at most one credited payout per settled game
CREATE TABLE IF NOT EXISTS payouts (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    game         TEXT NOT NULL CHECK (game IN ('mines', 'coinflip', 'royale')),
    reference_id INTEGER NOT NULL,
    owner_wallet TEXT NOT NULL,
    amount       TEXT NOT NULL,
    created_at   INTEGER NOT NULL,
    UNIQUE (game, reference_id)
);

-- Coins: metadata mirrored from the launch platform, used for display only
CREATE TABLE IF NOT EXISTS coins (
    coin_id       TEXT PRIMARY KEY,
    token_address TEXT NOT NULL DEFAULT '' COLLATE NOCASE,
    name          TEXT NOT NULL DEFAULT '',
    symbol        TEXT NOT NULL DEFAULT '',
    image_url     TEXT NOT NULL DEFAULT '',
    updated_at    INTEGER NOT NULL
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_mines_owner ON mines_sessions(owner_wallet);
CREATE INDEX IF NOT EXISTS idx_mines_status ON mines_sessions(status);
CREATE INDEX IF NOT EXISTS idx_coinflip_owner ON coinflip_games(owner_wallet);
CREATE INDEX IF NOT EXISTS idx_coinflip_created ON coinflip_games(created_at);
CREATE INDEX IF NOT EXISTS idx_battles_created ON royale_battles(created_at);
CREATE INDEX IF NOT EXISTS idx_stakes_battle ON royale_stakes(battle_id);
CREATE INDEX IF NOT EXISTS idx_pumpplay_status ON pumpplay_rounds(status);
CREATE INDEX IF NOT EXISTS idx_pumpplay_bets_round ON pumpplay_bets(round_id);
CREATE INDEX IF NOT EXISTS idx_payouts_owner ON payouts(owner_wallet);
CREATE INDEX IF NOT EXISTS idx_coins_token ON coins(token_address COLLATE NOCASE);
"""
