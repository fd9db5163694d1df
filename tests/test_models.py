from conftest import BASE_TS
from staking_loop.models.market import DAY_SECONDS, HistoricalData, PricePoint, PriceSeries


def test_series_sorts_and_keeps_last_duplicate():
    series = PriceSeries(
        [(BASE_TS + DAY_SECONDS, 2010.0), (BASE_TS, 1999.0), (BASE_TS, 2000.0)]
    )

    assert len(series) == 2
    assert series.first == PricePoint(BASE_TS, 2000.0)
    assert series.last == PricePoint(BASE_TS + DAY_SECONDS, 2010.0)


def test_exact_lookup_and_last_known():
    series = PriceSeries([(BASE_TS, 2000.0), (BASE_TS + 2 * DAY_SECONDS, 2020.0)])

    assert series.price_at(BASE_TS) == 2000.0
    assert series.price_at(BASE_TS + DAY_SECONDS) is None
    assert series.last_known(BASE_TS + DAY_SECONDS) == PricePoint(BASE_TS, 2000.0)
    assert series.last_known(BASE_TS - 1) is None


def test_window_is_half_open():
    series = PriceSeries([(BASE_TS + i * DAY_SECONDS, 2000.0 + i) for i in range(10)])
    window = series.window(BASE_TS + 9 * DAY_SECONDS, 7)

    assert list(window.index) == [BASE_TS + i * DAY_SECONDS for i in range(3, 10)]


def test_historical_data_accepts_snake_and_camel_case():
    points = [{"timestamp": BASE_TS, "price": 2000.0}]
    camel = HistoricalData.from_mapping(
        {"ethPrices": points, "wstethPrices": points, "gasPrices": points}
    )
    snake = HistoricalData.from_mapping(
        {"eth_prices": points, "wsteth_prices": points, "gas_prices": points}
    )

    assert camel.to_dict() == snake.to_dict()
    assert camel.to_dict()["ethPrices"] == points


def test_missing_series_are_empty():
    history = HistoricalData.from_mapping({"ethPrices": [{"timestamp": BASE_TS, "price": 1.0}]})

    assert history.wsteth_prices.empty
    assert history.gas_prices.empty
