"""CLI smoke tests."""


def test_seed_demo_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed-demo"])
    assert result.exit_code == 0, result.output
    assert "Seeded 4 product(s)" in result.output

    listing = runner.invoke(args=["products", "list", "--search", "shirt"])
    assert listing.exit_code == 0
    assert "T-Shirt (M)" in listing.output
    assert "Coffee Beans" not in listing.output

    sales = runner.invoke(args=["sales", "list"])
    assert sales.exit_code == 0
    assert "COMPLETED" in sales.output


def test_seed_demo_twice_skips_existing(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["system", "seed-demo"])

    result = runner.invoke(args=["system", "seed-demo"])
    assert result.exit_code == 0
    assert "SKIP Widget" in result.output
    assert "Seeded 0 product(s)" in result.output


def test_stats_rejects_bad_month(app, db_session):
    result = app.test_cli_runner().invoke(args=["stats", "monthly", "2025", "13"])
    assert result.exit_code != 0
    assert "month must be between 1 and 12" in result.output
