"""
backend/features/submodules/registry.py

Built-in submodule definitions for bizdesk.

Prices are monthly net PLN. Entries marked default_enabled are switched on
for every tenant by initialize_defaults() and can never be disabled.
"""

from decimal import Decimal

from backend.features.submodules.catalog import SubmoduleCatalog
from backend.models.submodule import ModuleCode, SubmoduleCategory, SubmoduleDefinition

INCLUDED = SubmoduleCategory.INCLUDED
ADDON = SubmoduleCategory.ADDON


BUILTIN_SUBMODULES = (
    # CRM
    SubmoduleDefinition(
        code="CRM.CUSTOMERS",
        parent_module=ModuleCode.CRM,
        name="Customers",
        name_pl="Klienci",
        description="Customer records with contact and billing data",
        description_pl="Kartoteka klientów z danymi kontaktowymi i rozliczeniowymi",
        icon="users",
        category=INCLUDED,
        default_enabled=True,
        routes=("/crm/customers",),
        api_endpoints=("/v1/crm/customers",),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="CRM.CONTACTS",
        parent_module=ModuleCode.CRM,
        name="Contacts",
        name_pl="Osoby kontaktowe",
        description="Contact persons attached to customers",
        description_pl="Osoby kontaktowe przypisane do klientów",
        icon="contact",
        category=INCLUDED,
        default_enabled=True,
        required_submodules=("CRM.CUSTOMERS",),
        sort_order=2,
    ),
    SubmoduleDefinition(
        code="CRM.TAGS",
        parent_module=ModuleCode.CRM,
        name="Tags",
        name_pl="Tagi",
        description="Free-form labels on customers",
        description_pl="Dowolne etykiety na kartotekach klientów",
        icon="tag",
        category=INCLUDED,
        sort_order=3,
    ),
    SubmoduleDefinition(
        code="CRM.SEGMENTS",
        parent_module=ModuleCode.CRM,
        name="Customer segments",
        name_pl="Segmentacja klientów",
        description="Rule-based customer segments for targeting",
        description_pl="Segmenty klientów oparte o reguły",
        icon="filter",
        category=ADDON,
        price=Decimal("49"),
        features=("Dynamic segments", "Segment rules", "Segment statistics"),
        routes=("/crm/segments",),
        api_endpoints=("/v1/crm/segments",),
        sort_order=4,
    ),
    SubmoduleDefinition(
        code="CRM.EXPORT",
        parent_module=ModuleCode.CRM,
        name="Segment export",
        name_pl="Eksport segmentów",
        description="Export segments to CSV and mailing tools",
        description_pl="Eksport segmentów do CSV i narzędzi mailingowych",
        icon="download",
        category=ADDON,
        price=Decimal("29"),
        required_submodules=("CRM.SEGMENTS",),
        features=("CSV export", "Scheduled exports"),
        api_endpoints=("/v1/crm/segments/{id}/export",),
        sort_order=5,
    ),
    # Orders
    SubmoduleDefinition(
        code="ORDERS.BASIC",
        parent_module=ModuleCode.ORDERS,
        name="Orders",
        name_pl="Zamówienia",
        description="Order entry and history",
        description_pl="Rejestracja i historia zamówień",
        icon="shopping-cart",
        category=INCLUDED,
        default_enabled=True,
        routes=("/orders",),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="ORDERS.STATUS_TRACKING",
        parent_module=ModuleCode.ORDERS,
        name="Status tracking",
        name_pl="Śledzenie statusów",
        description="Order status history and timeline",
        description_pl="Historia i oś czasu statusów zamówienia",
        icon="clock",
        category=INCLUDED,
        default_enabled=True,
        required_submodules=("ORDERS.BASIC",),
        sort_order=2,
    ),
    SubmoduleDefinition(
        code="ORDERS.EMAIL_NOTIFICATIONS",
        parent_module=ModuleCode.ORDERS,
        name="Email notifications",
        name_pl="Powiadomienia e-mail",
        description="Notify customers about order status changes",
        description_pl="Powiadamianie klientów o zmianach statusu zamówienia",
        icon="mail",
        category=ADDON,
        price=Decimal("39"),
        required_submodules=("ORDERS.STATUS_TRACKING",),
        features=("Status templates", "Delivery log"),
        sort_order=3,
    ),
    # Products
    SubmoduleDefinition(
        code="PRODUCTS.CATALOG",
        parent_module=ModuleCode.PRODUCTS,
        name="Product catalog",
        name_pl="Katalog produktów",
        icon="package",
        category=INCLUDED,
        default_enabled=True,
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="PRODUCTS.VARIANTS",
        parent_module=ModuleCode.PRODUCTS,
        name="Variants",
        name_pl="Warianty produktów",
        description="Sizes, colours and other product variants",
        description_pl="Rozmiary, kolory i inne warianty produktów",
        icon="layers",
        category=ADDON,
        price=Decimal("49"),
        required_submodules=("PRODUCTS.CATALOG",),
        sort_order=2,
    ),
    # Warehouse
    SubmoduleDefinition(
        code="WMS.LOCATIONS",
        parent_module=ModuleCode.WMS,
        name="Warehouse locations",
        name_pl="Lokalizacje magazynowe",
        description="Zones, racks and bins",
        description_pl="Strefy, regały i półki",
        icon="map-pin",
        category=INCLUDED,
        required_submodules=("PRODUCTS.CATALOG",),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="WMS.BARCODE",
        parent_module=ModuleCode.WMS,
        name="Barcode scanning",
        name_pl="Skanowanie kodów",
        description="Barcode and QR scanning on mobile devices",
        description_pl="Skanowanie kodów kreskowych i QR na urządzeniach mobilnych",
        icon="scan",
        category=INCLUDED,
        required_submodules=("WMS.LOCATIONS",),
        sort_order=2,
    ),
    SubmoduleDefinition(
        code="WMS.DOCUMENTS",
        parent_module=ModuleCode.WMS,
        name="Warehouse documents",
        name_pl="Dokumenty magazynowe",
        description="Goods received and goods issued documents",
        description_pl="Dokumenty PZ, WZ, MM",
        icon="file-text",
        category=ADDON,
        price=Decimal("79"),
        required_submodules=("WMS.LOCATIONS",),
        features=("PZ / WZ / MM", "Document numbering"),
        api_endpoints=("/v1/wms/documents",),
        sort_order=3,
    ),
    SubmoduleDefinition(
        code="WMS.INVENTORY",
        parent_module=ModuleCode.WMS,
        name="Stocktaking",
        name_pl="Inwentaryzacja",
        description="Full and partial stocktaking with variance reports",
        description_pl="Inwentaryzacja pełna i częściowa z raportem różnic",
        icon="clipboard-check",
        category=ADDON,
        price=Decimal("59"),
        required_submodules=("WMS.LOCATIONS", "WMS.DOCUMENTS"),
        sort_order=4,
    ),
    SubmoduleDefinition(
        code="WMS.CONTAINERS",
        parent_module=ModuleCode.WMS,
        name="Containers",
        name_pl="Kontenery i palety",
        description="Track pallets and returnable containers",
        description_pl="Ewidencja palet i opakowań zwrotnych",
        icon="box",
        category=ADDON,
        price=Decimal("49"),
        is_beta=True,
        required_submodules=("WMS.LOCATIONS",),
        sort_order=5,
    ),
    # Pricing
    SubmoduleDefinition(
        code="PRICING.TABLES",
        parent_module=ModuleCode.PRICING,
        name="Price tables",
        name_pl="Tabele cenowe",
        description="Customer-group price lists",
        description_pl="Cenniki dla grup klientów",
        icon="table",
        category=INCLUDED,
        required_submodules=("PRODUCTS.CATALOG",),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="PRICING.DUAL",
        parent_module=ModuleCode.PRICING,
        name="Net and gross prices",
        name_pl="Ceny netto i brutto",
        icon="percent",
        category=INCLUDED,
        required_submodules=("PRICING.TABLES",),
        sort_order=2,
    ),
    SubmoduleDefinition(
        code="PRICING.SURCHARGES",
        parent_module=ModuleCode.PRICING,
        name="Surcharges",
        name_pl="Dopłaty",
        description="Delivery and packaging surcharges",
        description_pl="Dopłaty za dostawę i opakowanie",
        icon="plus-circle",
        category=ADDON,
        price=Decimal("29"),
        required_submodules=("PRICING.TABLES",),
        sort_order=3,
    ),
    SubmoduleDefinition(
        code="PRICING.MARGINS",
        parent_module=ModuleCode.PRICING,
        name="Margin analysis",
        name_pl="Analiza marż",
        icon="trending-up",
        category=ADDON,
        price=Decimal("69"),
        required_submodules=("PRICING.TABLES",),
        sort_order=4,
    ),
    # Loyalty
    SubmoduleDefinition(
        code="LOYALTY.POINTS",
        parent_module=ModuleCode.LOYALTY,
        name="Points",
        name_pl="System punktów",
        description="Earn and redeem points on purchases",
        description_pl="Naliczanie i wymiana punktów za zakupy",
        icon="star",
        category=ADDON,
        price=Decimal("79"),
        required_submodules=("CRM.CUSTOMERS",),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="LOYALTY.DISCOUNTS",
        parent_module=ModuleCode.LOYALTY,
        name="Discount codes",
        name_pl="Kody rabatowe",
        description="Discount codes and promotions",
        description_pl="Zarządzanie kodami rabatowymi i promocjami",
        icon="ticket",
        category=ADDON,
        price=Decimal("49"),
        sort_order=2,
    ),
    SubmoduleDefinition(
        code="LOYALTY.TIERS",
        parent_module=ModuleCode.LOYALTY,
        name="Loyalty tiers",
        name_pl="Poziomy lojalnościowe",
        description="Bronze, silver, gold and platinum tiers",
        description_pl="System poziomów (Brązowy, Srebrny, Złoty, Platynowy)",
        icon="award",
        category=ADDON,
        price=Decimal("39"),
        required_submodules=("LOYALTY.POINTS",),
        sort_order=3,
    ),
    # Production
    SubmoduleDefinition(
        code="PRODUCTION.PLANNING",
        parent_module=ModuleCode.PRODUCTION,
        name="Production plans",
        name_pl="Plany produkcji",
        description="Aggregate orders into daily production plans",
        description_pl="Agregacja zamówień i tworzenie planów produkcji na dzień",
        icon="factory",
        category=ADDON,
        price=Decimal("149"),
        required_submodules=("ORDERS.BASIC", "PRODUCTS.CATALOG"),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="PRODUCTION.CONVERSION",
        parent_module=ModuleCode.PRODUCTION,
        name="Unit conversion",
        name_pl="Konwersja jednostek",
        icon="repeat",
        category=INCLUDED,
        required_submodules=("PRODUCTION.PLANNING",),
        sort_order=2,
    ),
    SubmoduleDefinition(
        code="PRODUCTION.PREORDER",
        parent_module=ModuleCode.PRODUCTION,
        name="Pre-order calendar",
        name_pl="Kalendarz pre-orderów",
        description="Order slots with daily limits up to 60 days ahead",
        description_pl="System slotów z limitami zamówień na 60 dni wprzód",
        icon="calendar",
        category=ADDON,
        price=Decimal("99"),
        required_submodules=("PRODUCTION.PLANNING",),
        sort_order=3,
    ),
    SubmoduleDefinition(
        code="PRODUCTION.RECIPES",
        parent_module=ModuleCode.PRODUCTION,
        name="Recipes",
        name_pl="Receptury produkcyjne",
        icon="book-open",
        category=ADDON,
        price=Decimal("69"),
        is_beta=True,
        required_submodules=("PRODUCTION.PLANNING",),
        sort_order=4,
    ),
    # Quotes
    SubmoduleDefinition(
        code="QUOTES.BASIC",
        parent_module=ModuleCode.QUOTES,
        name="Quotes",
        name_pl="Oferty",
        icon="file-plus",
        category=INCLUDED,
        required_submodules=("CRM.CUSTOMERS",),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="QUOTES.AUTO_CONVERT",
        parent_module=ModuleCode.QUOTES,
        name="Automatic order conversion",
        name_pl="Automatyczna konwersja na zamówienie",
        description="Accepted quotes become orders without review",
        description_pl="Zaakceptowane oferty stają się zamówieniami bez weryfikacji",
        icon="zap",
        category=ADDON,
        price=Decimal("39"),
        required_submodules=("QUOTES.BASIC", "ORDERS.BASIC"),
        conflicts_with=("QUOTES.APPROVAL_WORKFLOW",),
        sort_order=2,
    ),
    SubmoduleDefinition(
        code="QUOTES.APPROVAL_WORKFLOW",
        parent_module=ModuleCode.QUOTES,
        name="Approval workflow",
        name_pl="Akceptacja ofert",
        description="Manager approval before a quote is sent or converted",
        description_pl="Akceptacja kierownika przed wysłaniem lub konwersją oferty",
        icon="check-square",
        category=ADDON,
        price=Decimal("59"),
        required_submodules=("QUOTES.BASIC",),
        conflicts_with=("QUOTES.AUTO_CONVERT",),
        sort_order=3,
    ),
    # Invoices
    SubmoduleDefinition(
        code="INVOICES.BASIC",
        parent_module=ModuleCode.INVOICES,
        name="Invoices",
        name_pl="Faktury",
        icon="file",
        category=INCLUDED,
        required_submodules=("ORDERS.BASIC",),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="INVOICES.KSEF",
        parent_module=ModuleCode.INVOICES,
        name="KSeF integration",
        name_pl="Integracja z KSeF",
        description="Send invoices to the national e-invoicing system",
        description_pl="Wysyłka faktur do Krajowego Systemu e-Faktur",
        icon="send",
        category=ADDON,
        price=Decimal("99"),
        is_beta=True,
        required_submodules=("INVOICES.BASIC",),
        sort_order=2,
    ),
    # Reports
    SubmoduleDefinition(
        code="REPORTS.SALES",
        parent_module=ModuleCode.REPORTS,
        name="Sales reports",
        name_pl="Raporty sprzedaży",
        icon="bar-chart",
        category=ADDON,
        price=Decimal("99"),
        required_submodules=("ORDERS.BASIC",),
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="REPORTS.ADVANCED_ANALYTICS",
        parent_module=ModuleCode.REPORTS,
        name="Advanced analytics",
        name_pl="Zaawansowana analityka",
        description="Cohorts, forecasting and custom dashboards",
        description_pl="Kohorty, prognozy i własne pulpity",
        icon="activity",
        category=ADDON,
        price=Decimal("399"),
        is_active=False,
        required_submodules=("REPORTS.SALES",),
        sort_order=2,
    ),
    # AI branding (platform level)
    SubmoduleDefinition(
        code="AI_BRANDING.EXTRACTION",
        parent_module=ModuleCode.AI_BRANDING,
        name="Branding extraction",
        name_pl="Ekstrakcja brandingu",
        description="Fetch logo, colours and company data from a URL",
        description_pl="Automatyczne pobieranie logo, kolorów i danych firmy z URL",
        icon="sparkles",
        category=INCLUDED,
        default_enabled=True,
        sort_order=1,
    ),
    SubmoduleDefinition(
        code="AI_BRANDING.ONBOARDING",
        parent_module=ModuleCode.AI_BRANDING,
        name="Automatic onboarding",
        name_pl="Automatyczny onboarding",
        icon="rocket",
        category=INCLUDED,
        default_enabled=True,
        required_submodules=("AI_BRANDING.EXTRACTION",),
        sort_order=2,
    ),
    SubmoduleDefinition(
        code="AI_BRANDING.PROVIDERS",
        parent_module=ModuleCode.AI_BRANDING,
        name="AI providers",
        name_pl="Konfiguracja AI",
        icon="cpu",
        category=INCLUDED,
        default_enabled=True,
        sort_order=3,
    ),
    SubmoduleDefinition(
        code="AI_BRANDING.PORTAL_TOKENS",
        parent_module=ModuleCode.AI_BRANDING,
        name="Portal access tokens",
        name_pl="Tokeny dostępu portal",
        description="Customer portal access by link without login",
        description_pl="Dostęp do portalu klienta bez logowania (link z tokenem)",
        icon="key",
        category=INCLUDED,
        sort_order=4,
    ),
)


def build_default_catalog() -> SubmoduleCatalog:
    """Catalog of built-in submodules. Raises CatalogError on authoring mistakes."""
    return SubmoduleCatalog(BUILTIN_SUBMODULES)
