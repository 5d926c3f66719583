import pytest

from salesbot.schemas.chat import Intent, Sentiment
from salesbot.services.intent import analyze_sentiment, classify_intent, is_greeting


@pytest.mark.parametrize(
    "message,expected",
    [
        ("What is your return policy?", Intent.returns),
        ("Hi, can I get a refund?", Intent.returns),
        ("How long does shipping take?", Intent.shipping),
        ("Quels sont les délais de livraison ?", Intent.shipping),
        ("What does this cost?", Intent.price),
        ("Does it fit true to size?", Intent.size),
        ("Compare the jacket vs the coat", Intent.comparison),
        ("Is the beanie in stock?", Intent.availability),
        ("I need help with my order", Intent.support),
        ("Thanks!", Intent.thanks),
        ("Bonjour, montrez-moi des produits", Intent.greeting),
        ("hey", Intent.greeting),
        ("red running shoes", Intent.search),
        ("ok", Intent.other),
        ("", Intent.other),
    ],
)
def test_classify_intent(message: str, expected: Intent) -> None:
    assert classify_intent(message) == expected


def test_greeting_must_open_the_message() -> None:
    assert classify_intent("shoes for a wedding, hello") == Intent.search
    assert is_greeting("shoes for a wedding, hello") is True


@pytest.mark.parametrize(
    "message,expected",
    [
        ("I love these, thank you", Sentiment.positive),
        ("This is terrible, it arrived broken", Sentiment.negative),
        ("Do you sell hats?", Sentiment.neutral),
    ],
)
def test_analyze_sentiment(message: str, expected: Sentiment) -> None:
    assert analyze_sentiment(message) == expected


@pytest.mark.parametrize(
    "label,expected",
    [
        ("PRODUCT_SEARCH", Intent.search),
        ("PRICE_INQUIRY", Intent.price),
        ("SIZE_FIT", Intent.size),
        ("order_tracking", Intent.support),
        ("comparison", Intent.comparison),
        ("something new", Intent.other),
        (None, Intent.other),
    ],
)
def test_collaborator_labels_are_normalised(label, expected: Intent) -> None:
    assert Intent.parse(label) == expected
