"""Helpers for building each table of the synthetic survey export."""

import random
import uuid
from datetime import datetime, timedelta

NS = uuid.UUID("8b1d8f0e-6a0e-4f1f-9a57-2f0c4b9f6c1e")

SITE_TEMPLATES = [
    {"site": "Kanyinya", "west": 30.00, "south": -1.95, "east": 30.05, "north": -1.90, "target": 12},
    {"site": "Gisozi", "west": 30.05, "south": -1.95, "east": 30.10, "north": -1.90, "target": 10},
    {"site": "Jali", "west": 30.10, "south": -1.95, "east": 30.15, "north": -1.90, "target": 6},
]
ENUMERATORS = ("E01", "E02", "E03", "E04")
WATER_SOURCES = ("piped", "borehole", "river", "other")
OTHER_ANSWERS = ("rain tank", "neighbour tap", "vendor", "rain tank")
POINTS_PER_SITE = 4
FIELD_START = datetime(2024, 3, 4, 8, 0)


def stable_id(kind: str, identifier: str, dataset_name: str, seed: int) -> str:
    key = f"{dataset_name}-{seed}-{kind}-{identifier}"
    return str(uuid.uuid5(NS, key))


def rng_for(dataset_name: str, seed: int, offset: int) -> random.Random:
    return random.Random(seed + sum(ord(ch) for ch in dataset_name) + offset)


def build_polygons() -> dict:
    features = []
    for template in SITE_TEMPLATES:
        west, south = template["west"], template["south"]
        east, north = template["east"], template["north"]
        features.append(
            {
                "type": "Feature",
                "properties": {"site": template["site"]},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [
                        [[west, south], [east, south], [east, north], [west, north], [west, south]]
                    ],
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def build_targets() -> list[dict]:
    return [
        {"site": template["site"], "target": template["target"], "total_points": POINTS_PER_SITE}
        for template in SITE_TEMPLATES
    ]


def build_points(dataset_name: str, seed: int) -> list[dict]:
    rng = rng_for(dataset_name, seed, offset=10)
    rows = []
    for template in SITE_TEMPLATES:
        for number in range(1, POINTS_PER_SITE + 1):
            rows.append(
                {
                    "point_id": f"{template['site'][:3].upper()}-{number:02d}",
                    "site": template["site"],
                    "latitude": round(rng.uniform(template["south"] + 0.01, template["north"] - 0.01), 6),
                    "longitude": round(rng.uniform(template["west"] + 0.01, template["east"] - 0.01), 6),
                    "radius_m": 100,
                }
            )
    return rows


def _interview(
    dataset_name: str, seed: int, number: int, point: dict, rng: random.Random
) -> dict:
    start = FIELD_START + timedelta(days=number % 3, hours=rng.randint(0, 8), minutes=rng.randint(0, 59))
    duration = rng.randint(18, 55)
    consent = rng.choice(("1", "1", "1", "1", "2", "3"))
    water = rng.choice(WATER_SOURCES)
    return {
        "key": stable_id("interview", str(number), dataset_name, seed),
        "enum_id": ENUMERATORS[number % len(ENUMERATORS)],
        "site": point["site"],
        "point_id": point["point_id"],
        "consent": consent,
        "starttime": start.strftime("%Y-%m-%d %H:%M:%S"),
        "endtime": (start + timedelta(minutes=duration)).strftime("%Y-%m-%d %H:%M:%S"),
        "gps_latitude": round(point["latitude"] + rng.uniform(-0.0003, 0.0003), 6),
        "gps_longitude": round(point["longitude"] + rng.uniform(-0.0003, 0.0003), 6),
        "hh_size": rng.randint(1, 9) if consent == "1" else "",
        "water_source": water if consent == "1" else "",
        "water_source_other": rng.choice(OTHER_ANSWERS) if consent == "1" and water == "other" else "",
        "income": rng.choice((rng.randint(50, 900), "")) if consent == "1" else "",
    }


def build_interviews(dataset_name: str, seed: int, points: list[dict], count: int = 30) -> list[dict]:
    rng = rng_for(dataset_name, seed, offset=20)
    count = max(count, 6)
    rows = [
        _interview(dataset_name, seed, number, points[number % len(points)], rng)
        for number in range(count)
    ]
    for row in rows[:6]:
        row["consent"] = "1"
        row["hh_size"] = row["hh_size"] or 4
        row["water_source"] = row["water_source"] or "piped"

    # Deliberate defects, one per check family.
    rows[1]["key"] = rows[0]["key"]
    rows[2]["starttime"], rows[2]["endtime"] = rows[2]["endtime"], rows[2]["starttime"]
    rows[3]["site"] = "Gisozi" if rows[3]["site"] != "Gisozi" else "Kanyinya"
    rows[4]["gps_latitude"], rows[4]["gps_longitude"] = "", ""
    rows[5]["endtime"] = (
        datetime.strptime(rows[5]["starttime"], "%Y-%m-%d %H:%M:%S") + timedelta(minutes=6)
    ).strftime("%Y-%m-%d %H:%M:%S")
    return rows
