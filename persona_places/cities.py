"""Cities the recommender can target: map center, plausibility bounds and backfill catalog."""
from dataclasses import dataclass

from persona_places.models import Coordinates, LocationCategory


@dataclass(frozen=True)
class CatalogPlace:
    name: str
    address: str
    description: str
    category: LocationCategory
    lat: float
    lng: float
    rating: float
    website: str | None = None


@dataclass(frozen=True)
class City:
    key: str
    name: str
    center: Coordinates
    # (min_lat, max_lat, min_lng, max_lng)
    bounds: tuple[float, float, float, float]
    catalog: tuple[CatalogPlace, ...]

    def contains(self, lat: float, lng: float) -> bool:
        min_lat, max_lat, min_lng, max_lng = self.bounds
        return min_lat <= lat <= max_lat and min_lng <= lng <= max_lng


TORONTO = City(
    key="toronto",
    name="Toronto",
    center=Coordinates(lat=43.6532, lng=-79.3832),
    bounds=(43.58, 43.86, -79.64, -79.11),
    catalog=(
        CatalogPlace(
            name="CN Tower",
            address="290 Bremner Blvd, Toronto, ON M5V 3L9",
            description="Toronto's landmark tower with an observation deck and glass floor.",
            category=LocationCategory.ATTRACTION,
            lat=43.6426, lng=-79.3871, rating=4.6,
            website="https://www.cntower.ca",
        ),
        CatalogPlace(
            name="Royal Ontario Museum",
            address="100 Queens Park, Toronto, ON M5S 2C6",
            description="Natural history and world culture collections under one roof.",
            category=LocationCategory.MUSEUM,
            lat=43.6677, lng=-79.3948, rating=4.7,
            website="https://www.rom.on.ca",
        ),
        CatalogPlace(
            name="St. Lawrence Market",
            address="93 Front St E, Toronto, ON M5E 1C3",
            description="Historic food market with local vendors, bakeries and produce.",
            category=LocationCategory.SHOPPING,
            lat=43.6487, lng=-79.3716, rating=4.6,
            website="https://www.stlawrencemarket.com",
        ),
        CatalogPlace(
            name="Art Gallery of Ontario",
            address="317 Dundas St W, Toronto, ON M5T 1G4",
            description="Major art museum spanning Canadian, Indigenous and European work.",
            category=LocationCategory.ART,
            lat=43.6536, lng=-79.3925, rating=4.7,
            website="https://ago.ca",
        ),
        CatalogPlace(
            name="High Park",
            address="1873 Bloor St W, Toronto, ON M6R 2Z3",
            description="The city's largest public park, with trails, gardens and a pond.",
            category=LocationCategory.PARK,
            lat=43.6465, lng=-79.4637, rating=4.7,
        ),
        CatalogPlace(
            name="Kensington Market",
            address="Kensington Ave, Toronto, ON M5T 2K2",
            description="Eclectic neighbourhood of vintage shops, cafes and street food.",
            category=LocationCategory.SHOPPING,
            lat=43.6547, lng=-79.4005, rating=4.5,
        ),
        CatalogPlace(
            name="Distillery Historic District",
            address="55 Mill St, Toronto, ON M5A 3C4",
            description="Pedestrian village of Victorian industrial buildings, galleries and cafes.",
            category=LocationCategory.ATTRACTION,
            lat=43.6503, lng=-79.3596, rating=4.6,
            website="https://www.thedistillerydistrict.com",
        ),
        CatalogPlace(
            name="Hockey Hall of Fame",
            address="30 Yonge St, Toronto, ON M5E 1X8",
            description="Museum dedicated to the history of ice hockey.",
            category=LocationCategory.SPORTS,
            lat=43.6473, lng=-79.3772, rating=4.5,
            website="https://www.hhof.com",
        ),
        CatalogPlace(
            name="Massey Hall",
            address="178 Victoria St, Toronto, ON M5B 1T7",
            description="Storied concert hall hosting live music since 1894.",
            category=LocationCategory.MUSIC,
            lat=43.6541, lng=-79.3790, rating=4.7,
            website="https://www.masseyhall.com",
        ),
    ),
)

CITIES: dict[str, City] = {TORONTO.key: TORONTO}
