"""Fictional merchant pool used by the simulation harness."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Merchant:
    id: str
    name: str
    industry: str
    tier: str
    contact_name: str
    monthly_volume: str
    api_version: str


MERCHANTS: tuple[Merchant, ...] = (
    Merchant("mrc_neonthread", "NeonThread", "Fashion E-commerce", "mid-market", "Maya Chen", "$2.4M", "v3.2"),
    Merchant("mrc_velvetcart", "VelvetCart", "Luxury Goods", "enterprise", "Alessandro Romano", "$18M", "v2.8"),
    Merchant("mrc_pixelpantry", "PixelPantry", "Digital Downloads", "startup", "Jordan Rivera", "$89K", "v3.4"),
    Merchant("mrc_sunforgehome", "SunForge Home", "Home & Garden", "smb", "Patricia Nguyen", "$340K", "v3.1"),
    Merchant("mrc_cobaltgear", "CobaltGear", "Sports Equipment", "mid-market", "Marcus Thompson", "$1.8M", "v3.2"),
    Merchant("mrc_emberlux", "EmberLux", "Jewelry", "smb", "Sofia Martinez", "$520K", "v3.4"),
    Merchant("mrc_frostbyte", "FrostByte Electronics", "Consumer Electronics", "enterprise", "Daniel Kim", "$12M", "v3.0"),
    Merchant("mrc_willowmade", "WillowMade", "Handmade Crafts", "startup", "Emma Brooks", "$45K", "v3.4"),
    Merchant("mrc_vantablack", "VantaBlack Streetwear", "Urban Fashion", "mid-market", "Jaylen Washington", "$3.2M", "v3.2"),
    Merchant("mrc_terracove", "TerraCove Outdoors", "Outdoor Gear", "smb", "Hannah Miller", "$890K", "v3.1"),
    Merchant("mrc_chromawheel", "ChromaWheel", "Art Supplies", "smb", "Oliver Patel", "$280K", "v3.3"),
    Merchant("mrc_ironpetal", "IronPetal", "Fitness & Wellness", "mid-market", "Tessa Gonzalez", "$1.5M", "v3.2"),
    Merchant("mrc_atlasfreight", "AtlasFreight", "Logistics", "enterprise", "Priya Raman", "$25M", "v2.9"),
    Merchant("mrc_mossbyte", "MossByte", "SaaS Tools", "startup", "Leo Fischer", "$60K", "v3.4"),
    Merchant("mrc_quillandcrate", "Quill & Crate", "Stationery", "smb", "Nora Adeyemi", "$410K", "v3.3"),
    Merchant("mrc_harborlight", "Harborlight Travel", "Travel", "enterprise", "Samuel Ortiz", "$9.6M", "v3.0"),
)

# Merchant tiers favoured by each risk profile.
RISK_PROFILE_TIERS: dict[str, tuple[str, ...]] = {
    "high": ("enterprise", "mid-market"),
    "medium": ("mid-market", "smb"),
    "low": ("startup", "smb"),
}


def merchants_for_profiles(risk_profiles: list[str]) -> list[Merchant]:
    """Merchants whose tier fits any of ``risk_profiles``, in pool order."""
    tiers = {tier for profile in risk_profiles for tier in RISK_PROFILE_TIERS.get(profile, ())}
    return [m for m in MERCHANTS if m.tier in tiers]
