"""Keyword lists used by the rule-based message classifier (English + Indonesian)."""

from messagewise.pricing import MessageCategory

CLASSIFICATION_KEYWORDS = {
    MessageCategory.AUTHENTICATION: (
        "otp",
        "verification code",
        "verify",
        "kode verifikasi",
        "authentication",
        "confirm",
        "konfirmasi",
        "security code",
        "kode keamanan",
        "one-time password",
        "kode otp",
        "2fa",
        "two-factor",
        "login code",
        "kode login",
        "reset password",
        "activation code",
        "kode aktivasi",
    ),
    MessageCategory.MARKETING: (
        "promo",
        "discount",
        "sale",
        "offer",
        "deals",
        "diskon",
        "special offer",
        "limited time",
        "buy now",
        "shop now",
        "newsletter",
        "announcement",
        "launching",
        "new product",
        "flash sale",
        "gratis",
        "free shipping",
        "exclusive",
        "penawaran",
        "promosi",
        "hemat",
        "cashback",
        "voucher",
        "kupon",
        "coupon",
        "subscribe",
        "langganan",
        "campaign",
    ),
    MessageCategory.UTILITY: (
        "order",
        "receipt",
        "invoice",
        "payment",
        "transaction",
        "pesanan",
        "pembayaran",
        "transaksi",
        "ticket",
        "booking",
        "confirmation",
        "status update",
        "shipping",
        "delivery",
        "pengiriman",
        "tracking",
        "lacak",
        "invoice number",
        "nomor faktur",
        "appointment",
        "jadwal",
        "schedule",
        "reminder",
        "pengingat",
        "billing",
        "tagihan",
        "statement",
        "resi",
        "awb",
    ),
    MessageCategory.SERVICE: (
        "help",
        "bantuan",
        "support",
        "question",
        "pertanyaan",
        "inquiry",
        "feedback",
        "complaint",
        "keluhan",
        "issue",
        "masalah",
        "problem",
        "request",
        "permintaan",
        "information",
        "informasi",
        "thank you",
        "terima kasih",
        "customer service",
        "layanan pelanggan",
    ),
}

# Score weights for the free-window keyword vote
KEYWORD_WEIGHTS = {
    MessageCategory.AUTHENTICATION: 3.0,
    MessageCategory.MARKETING: 1.0,
    MessageCategory.UTILITY: 1.5,
    MessageCategory.SERVICE: 1.0,
}

# Transactional hints inside marketing content, reported by the optimizer
TRANSACTIONAL_KEYWORDS = (
    "order",
    "pesanan",
    "invoice",
    "payment",
    "pembayaran",
    "confirmation",
    "konfirmasi",
    "receipt",
    "tracking",
    "lacak",
)
