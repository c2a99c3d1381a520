from backend.clubhub.settings import Settings


def test_sqlite_url_uses_aiosqlite_driver():
    config = Settings(DATABASE_URL="sqlite:////tmp/clubs.db")
    assert config.async_database_url == "sqlite+aiosqlite:////tmp/clubs.db"


def test_postgres_url_uses_asyncpg_driver():
    config = Settings(DATABASE_URL="postgresql://club:secret@db:5432/clubs")
    assert config.async_database_url == "postgresql+asyncpg://club:secret@db:5432/clubs"


def test_explicit_driver_is_left_alone():
    url = "postgresql+psycopg://club@db/clubs"
    assert Settings(DATABASE_URL=url).async_database_url == url


def test_cors_origins_split_on_commas():
    config = Settings(CORS_ALLOW_ORIGINS=" https://a.example , https://b.example ,")
    assert config.allow_origins == ["https://a.example", "https://b.example"]
    assert Settings(CORS_ALLOW_ORIGINS="*").allow_origins == ["*"]
