#!/usr/bin/env python3
"""
seed_db.py — Populate MongoDB with reference and demo data for local development.

Inserts:
  - The station directory (bundled reality-network stations plus extra
    destination stations) used by station search and geocoding
  - Curated places for the Dream layer
  - Demo dreams (optional, --no-dreams to skip) so the map, stats and
    critical-mass overlay have something to show
  - Creates required indexes

Usage:
    python scripts/seed_db.py
    python scripts/seed_db.py --no-dreams
    python scripts/seed_db.py --mongo-uri mongodb://localhost:27017/pajama_party

Requires:
    pip install -e .
    MongoDB running locally (or set MONGO_URI in the environment / .env)

Safe to re-run: stations and places are replaced, demo dreams are
removed (matched on the demo email domain) and re-inserted.
"""

import argparse
import asyncio
import json
import os
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

from pajama_party.core.database import client_options, ensure_indexes
from pajama_party.models.dream import DreamCreate
from pajama_party.services.dream_validation import sanitize_dream, validate_dream

load_dotenv()

REALITY_FILE = Path(__file__).resolve().parent.parent / "pajama_party" / "data" / "reality-network.geojson"
DEMO_EMAIL_DOMAIN = "demo.pajama-party.eu"

COUNTRY_NAMES = {
    "AT": "Austria", "BE": "Belgium", "CH": "Switzerland", "CZ": "Czechia",
    "DE": "Germany", "DK": "Denmark", "ES": "Spain", "FR": "France",
    "HR": "Croatia", "HU": "Hungary", "IT": "Italy", "NL": "Netherlands",
    "PL": "Poland", "PT": "Portugal", "SE": "Sweden",
}

# Destination stations not on the bundled reality network
EXTRA_STATIONS = [
    {"station_id": "es-barcelona-sants", "name": "Barcelona Sants", "city": "Barcelona", "country": "ES", "lat": 41.3794, "lng": 2.1404},
    {"station_id": "es-madrid-atocha", "name": "Madrid Puerta de Atocha", "city": "Madrid", "country": "ES", "lat": 40.4065, "lng": -3.6895},
    {"station_id": "pt-lisboa-oriente", "name": "Lisboa Oriente", "city": "Lisbon", "country": "PT", "lat": 38.7678, "lng": -9.0990},
    {"station_id": "dk-kobenhavn-h", "name": "København H", "city": "Copenhagen", "country": "DK", "lat": 55.6727, "lng": 12.5649},
    {"station_id": "pl-warszawa-c", "name": "Warszawa Centralna", "city": "Warsaw", "country": "PL", "lat": 52.2287, "lng": 21.0031},
    {"station_id": "pl-krakow-gl", "name": "Kraków Główny", "city": "Krakow", "country": "PL", "lat": 50.0680, "lng": 19.9477},
    {"station_id": "hr-split", "name": "Split", "city": "Split", "country": "HR", "lat": 43.5040, "lng": 16.4402},
    {"station_id": "fr-marseille-stc", "name": "Marseille Saint-Charles", "city": "Marseille", "country": "FR", "lat": 43.3026, "lng": 5.3806},
    {"station_id": "fr-nice-ville", "name": "Nice Ville", "city": "Nice", "country": "FR", "lat": 43.7046, "lng": 7.2619},
]

SAMPLE_PLACES = [
    {"place_id": "hallstatt", "name": "Hallstatt", "brief_description": "Lakeside village under the Dachstein", "country": "AT", "latitude": 47.5622, "longitude": 13.6493, "place_type": "heritage", "priority_score": 92, "tags": ["lake", "alps", "unesco"]},
    {"place_id": "cinque-terre", "name": "Cinque Terre", "brief_description": "Five cliffside villages on the Ligurian coast", "country": "IT", "latitude": 44.1461, "longitude": 9.6439, "place_type": "coast", "priority_score": 95, "tags": ["sea", "hiking", "unesco"]},
    {"place_id": "lofoten", "name": "Lofoten", "brief_description": "Arctic peaks rising straight out of the sea", "country": "NO", "latitude": 68.2093, "longitude": 13.6072, "place_type": "nature", "priority_score": 88, "tags": ["arctic", "fjords", "hiking"]},
    {"place_id": "dubrovnik", "name": "Dubrovnik", "brief_description": "Walled old town on the Adriatic", "country": "HR", "latitude": 42.6507, "longitude": 18.0944, "place_type": "heritage", "priority_score": 85, "tags": ["sea", "old town", "unesco"]},
    {"place_id": "chamonix", "name": "Chamonix", "brief_description": "Alpine town at the foot of Mont Blanc", "country": "FR", "latitude": 45.9237, "longitude": 6.8694, "place_type": "mountain", "priority_score": 83, "tags": ["alps", "skiing", "hiking"]},
    {"place_id": "sintra", "name": "Sintra", "brief_description": "Palaces and gardens in the hills above Lisbon", "country": "PT", "latitude": 38.8029, "longitude": -9.3817, "place_type": "heritage", "priority_score": 80, "tags": ["palaces", "gardens", "unesco"]},
    {"place_id": "saxon-switzerland", "name": "Saxon Switzerland", "brief_description": "Sandstone towers along the Elbe", "country": "DE", "latitude": 50.9167, "longitude": 14.1667, "place_type": "nature", "priority_score": 76, "tags": ["hiking", "climbing", "river"]},
    {"place_id": "plitvice", "name": "Plitvice Lakes", "brief_description": "Terraced lakes joined by waterfalls", "country": "HR", "latitude": 44.8654, "longitude": 15.5820, "place_type": "nature", "priority_score": 87, "tags": ["lakes", "waterfalls", "unesco"]},
    {"place_id": "barcelona", "name": "Barcelona", "brief_description": "Gaudí, beaches and late dinners", "country": "ES", "latitude": 41.3874, "longitude": 2.1686, "place_type": "city", "priority_score": 90, "tags": ["city", "sea", "architecture"]},
    {"place_id": "krakow", "name": "Kraków", "brief_description": "Medieval old town and Wawel castle", "country": "PL", "latitude": 50.0647, "longitude": 19.9450, "place_type": "city", "priority_score": 78, "tags": ["city", "old town", "unesco"]},
]

DEMO_NAMES = ["Anna", "Ben", "Chiara", "Dario", "Elif", "Femke", "Gustav", "Hana", "Ilse", "Jonas", "Klara", "Luca"]

# (origin station, destination city, how many demo dreams)
DEMO_ROUTES = [
    ("Berlin Hauptbahnhof", "Barcelona", 12),
    ("Berlin Hauptbahnhof", "Split", 4),
    ("Amsterdam Centraal", "Barcelona", 7),
    ("Paris Est", "Lisbon", 5),
    ("Wien Hauptbahnhof", "Copenhagen", 3),
    ("München Hauptbahnhof", "Nice", 6),
    ("Praha hlavní nádraží", "Marseille", 2),
    ("Stockholm Centralstation", "Krakow", 1),
]


def load_network_stations() -> list[dict]:
    with open(REALITY_FILE, encoding="utf-8") as fh:
        collection = json.load(fh)
    stations = []
    for feature in collection["features"]:
        if feature["geometry"]["type"] != "Point":
            continue
        props = feature["properties"]
        lng, lat = feature["geometry"]["coordinates"]
        stations.append({
            "station_id": props["id"],
            "name": props["name"],
            "city": props["city"],
            "country": props["country"],
            "lat": lat,
            "lng": lng,
            "station_type": "hub" if props.get("is_major_hub") else "station",
        })
    return stations


def build_stations() -> list[dict]:
    stations = load_network_stations() + [dict(s, station_type="station") for s in EXTRA_STATIONS]
    for station in stations:
        station["country_name"] = COUNTRY_NAMES.get(station["country"], station["country"])
    return stations


def build_demo_dreams(stations: list[dict], now: datetime, rng: random.Random) -> list[dict]:
    """Dream documents built through the same validation as POST /api/dreams."""
    by_name = {s["name"]: s for s in stations}
    by_city = {s["city"]: s for s in stations}
    docs = []
    for origin_name, city, count in DEMO_ROUTES:
        origin = by_name[origin_name]
        destination = by_city[city]
        for i in range(count):
            name = rng.choice(DEMO_NAMES)
            payload = DreamCreate(
                dreamer_name=name,
                origin_station=origin["name"],
                origin_country=origin["country"],
                origin_lat=origin["lat"],
                origin_lng=origin["lng"],
                destination_city=city,
                destination_country=destination["country"],
                destination_lat=destination["lat"],
                destination_lng=destination["lng"],
                email=f"{name.lower()}.{i}@{DEMO_EMAIL_DOMAIN}",
            )
            errors = validate_dream(payload)
            if errors:
                raise ValueError(f"Demo dream {origin_name} → {city} is invalid: {errors}")
            # spread over the last three weeks so the 7-day activity chart has shape
            created = now - timedelta(hours=rng.randint(1, 21 * 24))
            docs.append(sanitize_dream(payload, created))
    return docs


async def seed(mongo_uri: str, db_name: str, with_dreams: bool) -> None:
    print("Connecting to MongoDB...")
    client = AsyncIOMotorClient(mongo_uri, **client_options(mongo_uri))
    db = client[db_name]

    try:
        # Verify connection
        await client.admin.command("ping")
        print("Connected.")

        # ─── Stations ─────────────────────────────────────────────────────────
        stations = build_stations()
        await db.stations.delete_many({})
        result = await db.stations.insert_many(stations)
        print(f"Inserted {len(result.inserted_ids)} stations.")

        # ─── Places ───────────────────────────────────────────────────────────
        await db.places.delete_many({})
        result = await db.places.insert_many(SAMPLE_PLACES)
        print(f"Inserted {len(result.inserted_ids)} places.")

        # ─── Demo dreams ──────────────────────────────────────────────────────
        deleted = await db.dreams.delete_many({"email": {"$regex": f"@{DEMO_EMAIL_DOMAIN}$"}})
        print(f"Removed {deleted.deleted_count} existing demo dreams.")
        if with_dreams:
            dreams = build_demo_dreams(stations, datetime.now(timezone.utc), random.Random(42))
            result = await db.dreams.insert_many(dreams)
            print(f"Inserted {len(result.inserted_ids)} demo dreams.")

        # ─── Ensure indexes exist ─────────────────────────────────────────────
        await ensure_indexes(db)
        print("Indexes ensured.")

        print("\nSeed complete! Dreams per origin station:")
        pipeline = [
            {"$group": {"_id": "$origin_station", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ]
        async for doc in db.dreams.aggregate(pipeline):
            print(f"  {doc['_id']}: {doc['count']} dreams")

    finally:
        client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the Pajama Party database")
    parser.add_argument("--mongo-uri", default=os.getenv("MONGO_URI", "mongodb://localhost:27017/pajama_party"))
    parser.add_argument("--db-name", default=os.getenv("MONGO_DB_NAME", "pajama_party"))
    parser.add_argument("--no-dreams", action="store_true", help="Seed reference data only")
    args = parser.parse_args()
    asyncio.run(seed(args.mongo_uri, args.db_name, with_dreams=not args.no_dreams))


if __name__ == "__main__":
    main()
