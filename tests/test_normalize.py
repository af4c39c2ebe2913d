from __future__ import annotations

from context.normalize import MISSING, normalize_external_routes


def test_keyed_mapping_is_taken_as_is():
    payload = {"routes": {"Lahore-Islamabad": {"departureTimes": ["08:00 AM"]}, "bad": "x"}}

    assert normalize_external_routes(payload) == {
        "Lahore-Islamabad": {"departureTimes": ["08:00 AM"]}
    }


def test_bookme_style_records_are_grouped_by_route():
    payload = {
        "buses": [
            {"origin": "Lahore", "destination": "Multan", "departure_time": "07:00 AM", "price": "2,900 PKR"},
            {"origin": "Lahore", "destination": "Multan", "departure_time": "10:00 AM"},
            {"origin": "Lahore", "destination": "Multan", "departure_time": "07:00 AM"},
        ]
    }

    routes = normalize_external_routes(payload)

    assert routes == {
        "Lahore-Multan": {
            "departureTimes": ["07:00 AM", "10:00 AM"],
            "ticketPrice": "2,900 PKR",
            "duration": MISSING,
        }
    }


def test_nested_wrapper_and_heterogeneous_field_names():
    payload = {
        "data": {
            "buses": [
                {"from": "Karachi", "to": "Lahore", "departureTimes": ["06:00 AM"], "ticketPrice": "7,600 PKR", "duration": "18 hours"},
                {"origin_name": "Islamabad", "destination_name": "Peshawar", "times": "09:00 AM", "duration_minutes": 150},
            ]
        }
    }

    routes = normalize_external_routes(payload)

    assert routes["Karachi-Lahore"]["duration"] == "18 hours"
    assert routes["Islamabad-Peshawar"]["departureTimes"] == ["09:00 AM"]
    assert routes["Islamabad-Peshawar"]["duration"] == "150 minutes"
    assert routes["Islamabad-Peshawar"]["ticketPrice"] == MISSING


def test_nested_routes_mapping():
    payload = {"data": {"routes": {"Lahore-Sialkot": {"ticketPrice": "1,500 PKR"}}}}

    assert normalize_external_routes(payload) == {"Lahore-Sialkot": {"ticketPrice": "1,500 PKR"}}


def test_records_without_both_ends_are_dropped():
    payload = [
        {"origin": "Lahore", "departure_time": "08:00 AM"},
        {"destination": "Multan"},
        "garbage",
    ]

    assert normalize_external_routes(payload) is None


def test_unusable_payloads_return_none():
    assert normalize_external_routes(None) is None
    assert normalize_external_routes("routes") is None
    assert normalize_external_routes({"routes": {}}) is None
    assert normalize_external_routes({"status": "ok"}) is None
