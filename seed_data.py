# Sample catalog loaded by `flask --app app init-db`

from decimal import Decimal

BED_SIZES = [
    {"id": "single", "label": "90x200", "price": -5000},
    {"id": "small_double", "label": "120x200", "price": -2500},
    {"id": "double", "label": "140x200", "price": 0},
    {"id": "queen", "label": "160x200", "price": 3000},
    {"id": "king", "label": "180x200", "price": 6000},
    {"id": "custom", "label": "Custom size", "price": 0},
]

BED_FABRIC_CATEGORIES = [
    {"id": "economy", "name": "Economy", "price_multiplier": 0.8},
    {"id": "standard", "name": "Standard", "price_multiplier": 1.0},
    {"id": "premium", "name": "Premium", "price_multiplier": 1.3},
]

MATTRESS_FABRIC_CATEGORIES = [
    {"id": "standard", "name": "Standard", "price_multiplier": 1.0},
    {"id": "premium", "name": "Premium", "price_multiplier": 1.2},
]


def _fabric(fid, name, category, photo):
    base = f"https://images.unsplash.com/{photo}?ixlib=rb-4.0.3&auto=format&fit=crop"
    return {
        "id": fid,
        "name": name,
        "category": category,
        "thumbnail": f"{base}&w=100&h=100",
        "image": f"{base}&w=1200&h=800",
    }


BED_FABRICS = [
    _fabric("gray", "Gray", "economy", "photo-1594377157809-5c1a31dd3933"),
    _fabric("blue", "Blue", "economy", "photo-1577401239170-897942555fb3"),
    _fabric("brown", "Brown", "economy", "photo-1579271723124-09bdee8249a1"),
    _fabric("beige", "Beige", "standard", "photo-1582966772680-860e372bb558"),
    _fabric("light_gray", "Light gray", "standard", "photo-1586105449897-20b5d46a3b51"),
    _fabric("dark_gray", "Dark gray", "standard", "photo-1618477247222-acbdb0e159b3"),
    _fabric("velvet_blue", "Blue velvet", "premium", "photo-1574634534894-89d7576c8259"),
    _fabric("velvet_green", "Green velvet", "premium", "photo-1517722014278-c256a91a6fba"),
    _fabric("leather_brown", "Brown leather", "premium", "photo-1596461010724-cae17a682069"),
]

MATTRESS_FABRICS = [
    _fabric("white", "White", "standard", "photo-1586105449897-20b5d46a3b51"),
    _fabric("beige", "Beige", "standard", "photo-1582966772680-860e372bb558"),
    _fabric("silver", "Silver", "premium", "photo-1618477247222-acbdb0e159b3"),
]


def _specs(*pairs):
    return [{"key": k, "value": v} for k, v in pairs]


SAMPLE_PRODUCTS = [
    {
        "name": 'Bed "Morpheus"',
        "description": "Upholstered bed with a soft headboard and a choice of fabrics. "
                       "Available with a gas-lift storage mechanism.",
        "category": "bed",
        "base_price": Decimal("41900"),
        "images": ["https://images.unsplash.com/photo-1505693416388-ac5ce068fe85?ixlib=rb-4.0.3&auto=format&fit=crop&w=1200&h=800"],
        "sizes": BED_SIZES,
        "fabric_categories": BED_FABRIC_CATEGORIES,
        "fabrics": BED_FABRICS,
        "has_lifting_mechanism": True,
        "lifting_mechanism_price": Decimal("8500"),
        "specifications": _specs(
            ("Base material", "Solid pine"),
            ("Headboard height", "115 cm"),
            ("Lifting mechanism", "Gas lift"),
            ("Max load", "320 kg"),
            ("Warranty", "18 months"),
        ),
        "discount": 10,
        "featured": True,
        "in_stock": True,
    },
    {
        "name": 'Bed "Aurora"',
        "description": "Modern bed with a tall headboard for classic and contemporary bedrooms.",
        "category": "bed",
        "base_price": Decimal("44900"),
        "images": ["https://images.unsplash.com/photo-1560185007-cde436f6a4d0?ixlib=rb-4.0.3&auto=format&fit=crop&w=1200&h=800"],
        "sizes": BED_SIZES,
        "fabric_categories": BED_FABRIC_CATEGORIES,
        "fabrics": BED_FABRICS,
        "has_lifting_mechanism": True,
        "lifting_mechanism_price": Decimal("9000"),
        "specifications": _specs(
            ("Base material", "Solid beech"),
            ("Headboard height", "120 cm"),
            ("Max load", "300 kg"),
            ("Warranty", "24 months"),
        ),
        "discount": 0,
        "featured": False,
        "in_stock": True,
    },
    {
        "name": 'Bed "Oscar" with storage',
        "description": "Bed with a roomy linen box, a good fit for small bedrooms.",
        "category": "bed",
        "base_price": Decimal("52400"),
        "images": [],
        "sizes": BED_SIZES,
        "fabric_categories": BED_FABRIC_CATEGORIES,
        "fabrics": BED_FABRICS,
        "has_lifting_mechanism": True,
        "lifting_mechanism_price": Decimal("10000"),
        "specifications": _specs(
            ("Linen box volume", "600 l"),
            ("Max load", "350 kg"),
            ("Warranty", "24 months"),
        ),
        "discount": 0,
        "featured": True,
        "in_stock": True,
    },
    {
        "name": 'Mattress "Comfort Lux"',
        "description": "Medium-firm pocket spring mattress with natural latex and coir layers.",
        "category": "mattress",
        "base_price": Decimal("28900"),
        "images": ["https://images.unsplash.com/photo-1631049035182-249067d7618e?ixlib=rb-4.0.3&auto=format&fit=crop&w=1200&h=800"],
        "sizes": BED_SIZES,
        "fabric_categories": MATTRESS_FABRIC_CATEGORIES,
        "fabrics": MATTRESS_FABRICS,
        "has_lifting_mechanism": False,
        "lifting_mechanism_price": Decimal("0"),
        "specifications": _specs(
            ("Spring unit", "Pocket, 256 springs/m2"),
            ("Firmness", "Medium"),
            ("Height", "24 cm"),
            ("Warranty", "36 months"),
        ),
        "discount": 15,
        "featured": False,
        "in_stock": True,
    },
    {
        "name": 'Mattress "Ergonomic"',
        "description": "Springless memory foam mattress that adapts to the body.",
        "category": "mattress",
        "base_price": Decimal("32750"),
        "images": [],
        "sizes": BED_SIZES,
        "fabric_categories": MATTRESS_FABRIC_CATEGORIES,
        "fabrics": MATTRESS_FABRICS,
        "has_lifting_mechanism": False,
        "lifting_mechanism_price": Decimal("0"),
        "specifications": _specs(
            ("Type", "Springless"),
            ("Height", "22 cm"),
            ("Warranty", "48 months"),
        ),
        "discount": 0,
        "featured": True,
        "in_stock": True,
    },
]
