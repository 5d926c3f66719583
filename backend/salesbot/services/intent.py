from __future__ import annotations

import re
from typing import Pattern, Sequence, Tuple

from salesbot.schemas.chat import Intent, Sentiment

# Order matters: policy questions beat greetings ("hi, what's your return policy?").
_INTENT_PATTERNS: Sequence[Tuple[Intent, Pattern[str]]] = (
    (Intent.returns, re.compile(
        r"(return|refund|exchange|retour|rembours|devoluci|reembolso|reso\b|rimborso|rückgabe|umtausch|devolu)",
        re.IGNORECASE,
    )),
    (Intent.shipping, re.compile(
        r"(shipping|delivery|deliver|ship\b|livraison|envío|envio|entrega|spedizione|versand|lieferung)",
        re.IGNORECASE,
    )),
    (Intent.price, re.compile(
        r"(price|\bcosts?\b|budget|cheap|expensive|prix|coût|cout|precio|costo|prezzo|preço|preco|preis|günstig)",
        re.IGNORECASE,
    )),
    (Intent.size, re.compile(r"(\bsize|\bfit\b|sizing|taille|talla|größe|grösse|tamanho|taglia)", re.IGNORECASE)),
    (Intent.comparison, re.compile(r"(compare|comparison|\bvs\b|versus|comparer|comparar|vergleich|confront)", re.IGNORECASE)),
    (Intent.availability, re.compile(
        r"(in stock|available|availability|disponible|disponib|verfügbar|lieferbar|disponível)",
        re.IGNORECASE,
    )),
    (Intent.support, re.compile(
        r"(help|support|problem|issue|broken|order status|\btrack|\baide\b|ayuda|ajuda|aiuto|hilfe)",
        re.IGNORECASE,
    )),
    (Intent.thanks, re.compile(r"(thank|thanks|merci|gracias|danke|obrigad|grazie)", re.IGNORECASE)),
    (Intent.greeting, re.compile(r"^\W*(hello|hi|hey|bonjour|salut|hola|hallo|olá|ola|ciao|buongiorno)\b", re.IGNORECASE)),
)

_GREETING_ANYWHERE = re.compile(r"\b(bonjour|hello|hi|hola|salut|ciao)\b", re.IGNORECASE)

_POSITIVE = re.compile(r"(love|great|awesome|perfect|excellent|amazing|thank|merci|gracias|danke|génial|genial)", re.IGNORECASE)
_NEGATIVE = re.compile(
    r"(hate|terrible|awful|broken|angry|worst|disappoint|refund now|never arrived|scam|useless|nul\b|horrible|schlecht)",
    re.IGNORECASE,
)


def classify_intent(text: str) -> Intent:
    message = text or ""
    for intent, pattern in _INTENT_PATTERNS:
        if pattern.search(message):
            return intent
    if any(len(token) > 2 for token in message.split()):
        return Intent.search
    return Intent.other


def analyze_sentiment(text: str) -> Sentiment:
    message = text or ""
    negative = len(_NEGATIVE.findall(message))
    positive = len(_POSITIVE.findall(message))
    if negative > positive:
        return Sentiment.negative
    if positive > negative:
        return Sentiment.positive
    return Sentiment.neutral


def is_greeting(text: str) -> bool:
    return bool(_GREETING_ANYWHERE.search(text or ""))
