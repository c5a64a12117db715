"""
Compliance rule tables shared by the regulatory skill and the specialists.

Policy data, not code: adding a destination regime means adding a rule and
its document list here.
"""

from typing import Dict, List, Optional

from guardian_engine.models.results import RequiredDocument

EU_COUNTRIES = frozenset((
    "austria", "belgium", "bulgaria", "croatia", "cyprus", "czech republic",
    "czechia", "denmark", "estonia", "finland", "france", "germany", "greece",
    "hungary", "ireland", "italy", "latvia", "lithuania", "luxembourg",
    "malta", "netherlands", "poland", "portugal", "romania", "slovakia",
    "slovenia", "spain", "sweden",
))

COUNTRY_ALIASES = {
    "us": "USA",
    "u.s.": "USA",
    "united states": "USA",
    "united states of america": "USA",
    "cn": "China",
    "prc": "China",
    "people's republic of china": "China",
    "ch": "Switzerland",
    "swiss confederation": "Switzerland",
    "the netherlands": "Netherlands",
    "holland": "Netherlands",
}


def canonical_country(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    stripped = name.strip()
    return COUNTRY_ALIASES.get(stripped.lower(), stripped)


def is_eu(country: Optional[str]) -> bool:
    if not country:
        return False
    lowered = canonical_country(country).lower()
    return lowered in EU_COUNTRIES or lowered in ("eu", "european union")


def same_country(a: Optional[str], b: str) -> bool:
    if not a:
        return False
    return canonical_country(a).lower() == b.lower()


def _doc(name, description, category, agency, agency_link="") -> RequiredDocument:
    return RequiredDocument(
        name=name,
        description=description,
        category=category,
        agency=agency,
        agency_link=agency_link,
    )


REQUIRED_DOCS: Dict[str, List[RequiredDocument]] = {
    "FSMA": [
        _doc(
            "FSVP (Foreign Supplier Verification Program)",
            "Importer must verify foreign suppliers meet FDA food safety standards",
            "Food Safety", "FDA",
            "https://www.fda.gov/food/food-safety-modernization-act-fsma/fsma-final-rule-foreign-supplier-verification-program",
        ),
        _doc(
            "PCQI Certificate",
            "Preventive Controls Qualified Individual certification",
            "Food Safety", "FDA",
            "https://www.fda.gov/food/food-safety-modernization-act-fsma/preventive-controls-human-food",
        ),
    ],
    "EUDR": [
        _doc(
            "EUDR Geolocation Statement",
            "Geolocation data of production plot confirming deforestation-free status",
            "Regulatory", "EU Commission",
            "https://environment.ec.europa.eu/topics/forests/deforestation/regulation-deforestation-free-products_en",
        ),
        _doc(
            "Due Diligence Statement",
            "Operator due diligence statement per EUDR Article 9",
            "Regulatory", "EU Commission",
            "https://environment.ec.europa.eu/topics/forests/deforestation/regulation-deforestation-free-products_en",
        ),
    ],
    "GACC": [
        _doc(
            "GACC Registration Number",
            "Overseas manufacturer registration with the General Administration of Customs",
            "Customs", "GACC",
            "http://english.customs.gov.cn/",
        ),
        _doc(
            "CIQ Health Certificate",
            "Official health certificate issued by the exporting country for China entry inspection",
            "Food Safety", "GACC",
        ),
    ],
    "SWISS": [
        _doc(
            "Swiss Import Permit",
            "General import licence for controlled goods entering Switzerland",
            "Customs", "FOAG",
            "https://www.blw.admin.ch/",
        ),
        _doc(
            "EUR.1 Movement Certificate",
            "Preferential origin proof for reduced Swiss customs duty",
            "Customs", "FOCBS",
            "https://www.bazg.admin.ch/",
        ),
    ],
    "HALAL": [
        _doc("Halal Certificate", "Halal certification from recognized Islamic authority",
             "Quality", "Jakim/MUI", "https://www.halal.gov.my/"),
    ],
    "KOSHER": [
        _doc("Kosher Certificate", "Kosher certification from recognized authority",
             "Quality", "OU Kosher", "https://www.ou.org/kosher/"),
    ],
    "ORGANIC": [
        _doc(
            "Organic Certificate", "Organic certification (USDA NOP, EU Organic, etc.)",
            "Quality", "USDA/EU",
            "https://www.ams.usda.gov/about-ams/programs-offices/national-organic-program",
        ),
        _doc("Transaction Certificate", "Organic transaction certificate from certifier",
             "Quality", "Certifier"),
    ],
    "IUU": [
        _doc("Catch Certificate", "IUU catch certificate proving legal origin",
             "Regulatory", "Flag State", "https://www.fao.org/iuu-fishing/en/"),
        _doc("Vessel License", "Valid fishing vessel license/authorization",
             "Regulatory", "Flag State"),
    ],
    "GENERAL": [
        _doc("Bill of Lading", "Ocean/Air transport document", "Customs", "Carrier"),
        _doc("Commercial Invoice", "Standard commercial invoice with Incoterms", "Customs", "Exporter"),
        _doc("Packing List", "Detailed packing list with weights and measures", "Customs", "Exporter"),
        _doc("Certificate of Origin", "Certificate of origin for customs", "Customs", "Chamber of Commerce"),
    ],
}


# destination: "any" | "EU" | country name. product_category "General" matches all products.
COMPLIANCE_RULES = [
    {
        "rule_id": "rule_eudr_eu_import",
        "regulation": "EUDR",
        "destination": "EU",
        "origin": "any",
        "product_category": "General",
        "required_documents": "EUDR",
    },
    {
        "rule_id": "rule_fsma_usa_import",
        "regulation": "FSMA",
        "destination": "USA",
        "origin": "any",
        "product_category": "General",
        "required_documents": "FSMA",
    },
    {
        "rule_id": "rule_gacc_china_import",
        "regulation": "GACC",
        "destination": "China",
        "origin": "any",
        "product_category": "General",
        "required_documents": "GACC",
    },
    {
        "rule_id": "rule_swiss_import_permit",
        "regulation": "SWISS",
        "destination": "Switzerland",
        "origin": "any",
        "product_category": "General",
        "required_documents": "SWISS",
    },
]


def required_docs(key: str) -> List[RequiredDocument]:
    """Fresh copies, so callers may annotate them."""
    return [doc.model_copy() for doc in REQUIRED_DOCS.get(key, [])]
