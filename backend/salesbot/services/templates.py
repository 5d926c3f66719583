from __future__ import annotations

import enum
import html
import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from salesbot.core.config import settings
from salesbot.schemas.chat import Intent, SuggestedAction
from salesbot.schemas.policy import ShopPolicies

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES: Tuple[str, ...] = ("en", "fr", "es", "de", "pt", "it")
ELLIPSIS = "..."

EXCELLENT_MATCH_THRESHOLD = 85
GOOD_MATCH_THRESHOLD = 70


class TemplateKey(str, enum.Enum):
    WELCOME_BROWSE = "welcome_browse"
    FEATURED_PRODUCTS = "featured_products"
    NO_PRODUCTS = "no_products"
    HELP_OPTIONS = "help_options"
    RANKED_EXCELLENT = "ranked_excellent"
    RANKED_GOOD = "ranked_good"
    RANKED_GENERIC = "ranked_generic"
    PRICE = "price"
    SIZE = "size"
    SUPPORT = "support"
    GREETING = "greeting"
    THANKS = "thanks"
    COMPARISON = "comparison"
    AVAILABILITY = "availability"
    DEFAULT = "default"
    SHIPPING_INTRO = "shipping_intro"
    RETURNS_INTRO = "returns_intro"
    SHIPPING_MISSING = "shipping_missing"
    RETURNS_MISSING = "returns_missing"
    PRIVACY_MISSING = "privacy_missing"
    ACTION_COMPARE = "action_compare"
    ACTION_BROWSE_ALL = "action_browse_all"
    ACTION_CONTACT_SUPPORT = "action_contact_support"


class TemplateValidationError(ValueError):
    pass


_K = TemplateKey

TEMPLATES: Mapping[str, Mapping[TemplateKey, str]] = {
    "en": {
        _K.WELCOME_BROWSE: "Welcome! I can help you explore our products. What are you looking for?",
        _K.FEATURED_PRODUCTS: "Check out our featured products:",
        _K.NO_PRODUCTS: "I don't have product information available at the moment. Please contact us for assistance.",
        _K.HELP_OPTIONS: "I can help you with:\n• Browse products\n• Search by keyword\n• View categories\n• Check prices and availability\n\nWhat would you like to explore?",
        _K.RANKED_EXCELLENT: "I found some excellent matches for \"{query}\"! These products closely match what you're looking for:",
        _K.RANKED_GOOD: "Here are some good options that match your search for \"{query}\":",
        _K.RANKED_GENERIC: "Based on your search for \"{query}\", here are some products you might be interested in:",
        _K.PRICE: "I can help you find products within your budget. What price range are you looking for?",
        _K.SIZE: "I can help you find the right size. What type of product are you looking for, and what are your measurements?",
        _K.SUPPORT: "I'm here to help with any issues you're experiencing. Can you tell me more about what you need assistance with?",
        _K.GREETING: "Hello! I'm your AI shopping assistant. I can help you find products, answer questions about pricing and shipping, and provide personalized recommendations. What are you looking for today?",
        _K.THANKS: "You're welcome! Is there anything else I can help you with?",
        _K.COMPARISON: "I'd be happy to help you compare products. Which products would you like to compare?",
        _K.AVAILABILITY: "I can check product availability for you. Which product are you interested in?",
        _K.DEFAULT: "I'm here to help you find the perfect products! You can ask me about:\n• Product recommendations\n• Pricing and budget options\n• Shipping and delivery\n• Returns and exchanges\n• Product details like size, color, and materials\n\nWhat would you like to know?",
        _K.SHIPPING_INTRO: "Here's our shipping information:\n\n{preview}",
        _K.RETURNS_INTRO: "Here's our return policy:\n\n{preview}\n\nWould you like me to help you with a specific return?",
        _K.SHIPPING_MISSING: "Shipping policy information is not configured for this store. Please contact customer support for details about shipping options and delivery times.",
        _K.RETURNS_MISSING: "Return policy information is not configured for this store. Please contact customer support for details about returns and refunds.",
        _K.PRIVACY_MISSING: "Privacy policy information is not available. Please contact customer support for more details.",
        _K.ACTION_COMPARE: "Compare products",
        _K.ACTION_BROWSE_ALL: "Browse all products",
        _K.ACTION_CONTACT_SUPPORT: "Contact support",
    },
    "fr": {
        _K.WELCOME_BROWSE: "Bienvenue ! Je peux vous aider à explorer nos produits. Que recherchez-vous ?",
        _K.FEATURED_PRODUCTS: "Découvrez nos produits en vedette :",
        _K.NO_PRODUCTS: "Je n'ai pas d'informations sur les produits disponibles pour le moment. Veuillez nous contacter pour obtenir de l'aide.",
        _K.HELP_OPTIONS: "Je peux vous aider avec :\n• Parcourir les produits\n• Rechercher par mot-clé\n• Voir les catégories\n• Vérifier les prix et la disponibilité\n\nQue souhaitez-vous explorer ?",
        _K.RANKED_EXCELLENT: "J'ai trouvé d'excellentes correspondances pour « {query} » ! Ces produits correspondent parfaitement à ce que vous recherchez :",
        _K.RANKED_GOOD: "Voici de bonnes options correspondant à votre recherche « {query} » :",
        _K.RANKED_GENERIC: "D'après votre recherche « {query} », voici quelques produits qui pourraient vous intéresser :",
        _K.PRICE: "Je peux vous aider à trouver des produits dans votre budget. Quelle gamme de prix recherchez-vous ?",
        _K.SIZE: "Je peux vous aider à trouver la bonne taille. Quel type de produit recherchez-vous et quelles sont vos mesures ?",
        _K.SUPPORT: "Je suis là pour vous aider. Pouvez-vous m'en dire plus sur ce dont vous avez besoin ?",
        _K.GREETING: "Bonjour ! Je suis votre assistant shopping. Je peux vous aider à trouver des produits, répondre à vos questions sur les prix et la livraison, et vous faire des recommandations personnalisées. Que recherchez-vous aujourd'hui ?",
        _K.THANKS: "Avec plaisir ! Puis-je vous aider avec autre chose ?",
        _K.COMPARISON: "Je serais ravi de vous aider à comparer des produits. Lesquels souhaitez-vous comparer ?",
        _K.AVAILABILITY: "Je peux vérifier la disponibilité d'un produit. Lequel vous intéresse ?",
        _K.DEFAULT: "Je suis là pour vous aider à trouver les produits parfaits ! Vous pouvez me demander :\n• Des recommandations de produits\n• Les prix et options de budget\n• La livraison\n• Les retours et échanges\n• Les détails comme la taille, la couleur et les matériaux\n\nQue souhaitez-vous savoir ?",
        _K.SHIPPING_INTRO: "Voici nos informations de livraison :\n\n{preview}",
        _K.RETURNS_INTRO: "Voici notre politique de retour :\n\n{preview}\n\nSouhaitez-vous de l'aide pour un retour spécifique ?",
        _K.SHIPPING_MISSING: "La politique de livraison n'est pas configurée pour cette boutique. Veuillez contacter le service client pour plus d'informations sur les options de livraison.",
        _K.RETURNS_MISSING: "La politique de retour n'est pas configurée pour cette boutique. Veuillez contacter le service client pour plus d'informations sur les retours et remboursements.",
        _K.PRIVACY_MISSING: "La politique de confidentialité n'est pas disponible. Veuillez contacter le service client pour plus d'informations.",
        _K.ACTION_COMPARE: "Comparer les produits",
        _K.ACTION_BROWSE_ALL: "Parcourir tous les produits",
        _K.ACTION_CONTACT_SUPPORT: "Contacter le support",
    },
    "es": {
        _K.WELCOME_BROWSE: "¡Bienvenido! Puedo ayudarte a explorar nuestros productos. ¿Qué estás buscando?",
        _K.FEATURED_PRODUCTS: "Echa un vistazo a nuestros productos destacados:",
        _K.NO_PRODUCTS: "No tengo información de productos disponible en este momento. Por favor contáctenos para obtener ayuda.",
        _K.HELP_OPTIONS: "Puedo ayudarte con:\n• Explorar productos\n• Buscar por palabra clave\n• Ver categorías\n• Consultar precios y disponibilidad\n\n¿Qué te gustaría explorar?",
        _K.RANKED_EXCELLENT: "¡Encontré coincidencias excelentes para \"{query}\"! Estos productos se ajustan muy bien a lo que buscas:",
        _K.RANKED_GOOD: "Aquí tienes algunas buenas opciones para tu búsqueda de \"{query}\":",
        _K.RANKED_GENERIC: "Según tu búsqueda de \"{query}\", aquí hay algunos productos que podrían interesarte:",
        _K.PRICE: "Puedo ayudarte a encontrar productos dentro de tu presupuesto. ¿Qué rango de precio buscas?",
        _K.SIZE: "Puedo ayudarte a encontrar la talla adecuada. ¿Qué tipo de producto buscas y cuáles son tus medidas?",
        _K.SUPPORT: "Estoy aquí para ayudarte con cualquier problema. ¿Puedes contarme más sobre lo que necesitas?",
        _K.GREETING: "¡Hola! Soy tu asistente de compras. Puedo ayudarte a encontrar productos, responder preguntas sobre precios y envíos, y darte recomendaciones personalizadas. ¿Qué buscas hoy?",
        _K.THANKS: "¡De nada! ¿Hay algo más en lo que pueda ayudarte?",
        _K.COMPARISON: "Con gusto te ayudo a comparar productos. ¿Qué productos quieres comparar?",
        _K.AVAILABILITY: "Puedo comprobar la disponibilidad de un producto. ¿Cuál te interesa?",
        _K.DEFAULT: "¡Estoy aquí para ayudarte a encontrar los productos perfectos! Puedes preguntarme sobre:\n• Recomendaciones de productos\n• Precios y presupuesto\n• Envíos y entregas\n• Devoluciones y cambios\n• Detalles como talla, color y materiales\n\n¿Qué te gustaría saber?",
        _K.SHIPPING_INTRO: "Aquí está nuestra información de envío:\n\n{preview}",
        _K.RETURNS_INTRO: "Aquí está nuestra política de devoluciones:\n\n{preview}\n\n¿Le gustaría ayuda con una devolución específica?",
        _K.SHIPPING_MISSING: "La política de envío no está configurada para esta tienda. Contacte al servicio de atención al cliente para obtener más información.",
        _K.RETURNS_MISSING: "La política de devoluciones no está configurada para esta tienda. Contacte al servicio de atención al cliente para obtener más información.",
        _K.PRIVACY_MISSING: "La política de privacidad no está disponible. Contacte al servicio de atención al cliente para más información.",
        _K.ACTION_COMPARE: "Comparar productos",
        _K.ACTION_BROWSE_ALL: "Ver todos los productos",
        _K.ACTION_CONTACT_SUPPORT: "Contactar soporte",
    },
    "de": {
        _K.WELCOME_BROWSE: "Willkommen! Ich kann Ihnen helfen, unsere Produkte zu erkunden. Was suchen Sie?",
        _K.FEATURED_PRODUCTS: "Schauen Sie sich unsere ausgewählten Produkte an:",
        _K.NO_PRODUCTS: "Ich habe derzeit keine Produktinformationen verfügbar. Bitte kontaktieren Sie uns für Hilfe.",
        _K.HELP_OPTIONS: "Ich kann Ihnen helfen mit:\n• Produkte durchsuchen\n• Nach Stichwort suchen\n• Kategorien anzeigen\n• Preise und Verfügbarkeit prüfen\n\nWas möchten Sie erkunden?",
        _K.RANKED_EXCELLENT: "Ich habe ausgezeichnete Treffer für \"{query}\" gefunden! Diese Produkte passen sehr gut zu Ihrer Suche:",
        _K.RANKED_GOOD: "Hier sind einige gute Optionen zu Ihrer Suche nach \"{query}\":",
        _K.RANKED_GENERIC: "Basierend auf Ihrer Suche nach \"{query}\" könnten Sie diese Produkte interessieren:",
        _K.PRICE: "Ich kann Ihnen helfen, Produkte in Ihrem Budget zu finden. Welche Preisspanne suchen Sie?",
        _K.SIZE: "Ich helfe Ihnen gern, die richtige Größe zu finden. Welche Art von Produkt suchen Sie und welche Maße haben Sie?",
        _K.SUPPORT: "Ich bin hier, um Ihnen bei Problemen zu helfen. Können Sie mir mehr darüber erzählen, wobei Sie Unterstützung brauchen?",
        _K.GREETING: "Hallo! Ich bin Ihr Einkaufsassistent. Ich kann Ihnen helfen, Produkte zu finden, Fragen zu Preisen und Versand beantworten und persönliche Empfehlungen geben. Was suchen Sie heute?",
        _K.THANKS: "Gern geschehen! Kann ich Ihnen noch bei etwas anderem helfen?",
        _K.COMPARISON: "Ich helfe Ihnen gern beim Vergleichen von Produkten. Welche Produkte möchten Sie vergleichen?",
        _K.AVAILABILITY: "Ich kann die Verfügbarkeit eines Produkts prüfen. Welches Produkt interessiert Sie?",
        _K.DEFAULT: "Ich helfe Ihnen, die perfekten Produkte zu finden! Sie können mich fragen nach:\n• Produktempfehlungen\n• Preisen und Budgetoptionen\n• Versand und Lieferung\n• Rückgaben und Umtausch\n• Produktdetails wie Größe, Farbe und Material\n\nWas möchten Sie wissen?",
        _K.SHIPPING_INTRO: "Hier sind unsere Versandinformationen:\n\n{preview}",
        _K.RETURNS_INTRO: "Hier ist unsere Rückgaberichtlinie:\n\n{preview}\n\nMöchten Sie Hilfe bei einer bestimmten Rückgabe?",
        _K.SHIPPING_MISSING: "Die Versandrichtlinie ist für diesen Shop nicht konfiguriert. Bitte kontaktieren Sie den Kundenservice für weitere Informationen.",
        _K.RETURNS_MISSING: "Die Rückgaberichtlinie ist für diesen Shop nicht konfiguriert. Bitte kontaktieren Sie den Kundenservice für weitere Informationen.",
        _K.PRIVACY_MISSING: "Die Datenschutzrichtlinie ist nicht verfügbar. Bitte kontaktieren Sie den Kundenservice für weitere Informationen.",
        _K.ACTION_COMPARE: "Produkte vergleichen",
        _K.ACTION_BROWSE_ALL: "Alle Produkte durchsuchen",
        _K.ACTION_CONTACT_SUPPORT: "Support kontaktieren",
    },
    "pt": {
        _K.WELCOME_BROWSE: "Bem-vindo! Posso ajudá-lo a explorar nossos produtos. O que você está procurando?",
        _K.FEATURED_PRODUCTS: "Confira nossos produtos em destaque:",
        _K.NO_PRODUCTS: "Não tenho informações de produtos disponíveis no momento. Entre em contato conosco para obter ajuda.",
        _K.HELP_OPTIONS: "Posso ajudá-lo com:\n• Navegar produtos\n• Pesquisar por palavra-chave\n• Ver categorias\n• Verificar preços e disponibilidade\n\nO que você gostaria de explorar?",
        _K.RANKED_EXCELLENT: "Encontrei ótimas correspondências para \"{query}\"! Estes produtos combinam muito bem com o que você procura:",
        _K.RANKED_GOOD: "Aqui estão algumas boas opções para sua busca por \"{query}\":",
        _K.RANKED_GENERIC: "Com base na sua busca por \"{query}\", aqui estão alguns produtos que podem interessar:",
        _K.PRICE: "Posso ajudá-lo a encontrar produtos dentro do seu orçamento. Que faixa de preço você está procurando?",
        _K.SIZE: "Posso ajudá-lo a encontrar o tamanho certo. Que tipo de produto você procura e quais são suas medidas?",
        _K.SUPPORT: "Estou aqui para ajudar com qualquer problema. Pode me contar mais sobre o que precisa?",
        _K.GREETING: "Olá! Sou seu assistente de compras. Posso ajudá-lo a encontrar produtos, responder perguntas sobre preços e envio e dar recomendações personalizadas. O que você procura hoje?",
        _K.THANKS: "De nada! Posso ajudar com mais alguma coisa?",
        _K.COMPARISON: "Terei prazer em ajudá-lo a comparar produtos. Quais produtos você gostaria de comparar?",
        _K.AVAILABILITY: "Posso verificar a disponibilidade de um produto. Qual produto lhe interessa?",
        _K.DEFAULT: "Estou aqui para ajudá-lo a encontrar os produtos perfeitos! Você pode me perguntar sobre:\n• Recomendações de produtos\n• Preços e orçamento\n• Envio e entrega\n• Devoluções e trocas\n• Detalhes como tamanho, cor e materiais\n\nO que você gostaria de saber?",
        _K.SHIPPING_INTRO: "Aqui estão nossas informações de envio:\n\n{preview}",
        _K.RETURNS_INTRO: "Aqui está nossa política de devolução:\n\n{preview}\n\nGostaria de ajuda com uma devolução específica?",
        _K.SHIPPING_MISSING: "A política de envio não está configurada para esta loja. Entre em contato com o suporte ao cliente para mais informações.",
        _K.RETURNS_MISSING: "A política de devolução não está configurada para esta loja. Entre em contato com o suporte ao cliente para mais informações.",
        _K.PRIVACY_MISSING: "A política de privacidade não está disponível. Entre em contato com o suporte ao cliente para mais informações.",
        _K.ACTION_COMPARE: "Comparar produtos",
        _K.ACTION_BROWSE_ALL: "Ver todos os produtos",
        _K.ACTION_CONTACT_SUPPORT: "Contatar suporte",
    },
    "it": {
        _K.WELCOME_BROWSE: "Benvenuto! Posso aiutarti a esplorare i nostri prodotti. Cosa stai cercando?",
        _K.FEATURED_PRODUCTS: "Dai un'occhiata ai nostri prodotti in evidenza:",
        _K.NO_PRODUCTS: "Non ho informazioni sui prodotti disponibili al momento. Contattaci per assistenza.",
        _K.HELP_OPTIONS: "Posso aiutarti con:\n• Sfogliare prodotti\n• Cercare per parola chiave\n• Visualizzare categorie\n• Controllare prezzi e disponibilità\n\nCosa vorresti esplorare?",
        _K.RANKED_EXCELLENT: "Ho trovato ottime corrispondenze per \"{query}\"! Questi prodotti corrispondono molto bene a ciò che cerchi:",
        _K.RANKED_GOOD: "Ecco alcune buone opzioni per la tua ricerca di \"{query}\":",
        _K.RANKED_GENERIC: "In base alla tua ricerca di \"{query}\", ecco alcuni prodotti che potrebbero interessarti:",
        _K.PRICE: "Posso aiutarti a trovare prodotti nel tuo budget. Quale fascia di prezzo stai cercando?",
        _K.SIZE: "Posso aiutarti a trovare la taglia giusta. Che tipo di prodotto cerchi e quali sono le tue misure?",
        _K.SUPPORT: "Sono qui per aiutarti con qualsiasi problema. Puoi dirmi di più su ciò di cui hai bisogno?",
        _K.GREETING: "Ciao! Sono il tuo assistente per lo shopping. Posso aiutarti a trovare prodotti, rispondere a domande su prezzi e spedizioni e darti consigli personalizzati. Cosa cerchi oggi?",
        _K.THANKS: "Prego! Posso aiutarti con qualcos'altro?",
        _K.COMPARISON: "Sarò felice di aiutarti a confrontare i prodotti. Quali prodotti vorresti confrontare?",
        _K.AVAILABILITY: "Posso verificare la disponibilità di un prodotto. Quale prodotto ti interessa?",
        _K.DEFAULT: "Sono qui per aiutarti a trovare i prodotti perfetti! Puoi chiedermi di:\n• Consigli sui prodotti\n• Prezzi e opzioni di budget\n• Spedizione e consegna\n• Resi e cambi\n• Dettagli come taglia, colore e materiali\n\nCosa vorresti sapere?",
        _K.SHIPPING_INTRO: "Ecco le nostre informazioni sulla spedizione:\n\n{preview}",
        _K.RETURNS_INTRO: "Ecco la nostra politica di reso:\n\n{preview}\n\nDesidera assistenza per un reso specifico?",
        _K.SHIPPING_MISSING: "La politica di spedizione non è configurata per questo negozio. Contatta il servizio clienti per maggiori informazioni.",
        _K.RETURNS_MISSING: "La politica di reso non è configurata per questo negozio. Contatta il servizio clienti per maggiori informazioni.",
        _K.PRIVACY_MISSING: "La politica sulla privacy non è disponibile. Contatta il servizio clienti per maggiori informazioni.",
        _K.ACTION_COMPARE: "Confronta prodotti",
        _K.ACTION_BROWSE_ALL: "Sfoglia tutti i prodotti",
        _K.ACTION_CONTACT_SUPPORT: "Contatta supporto",
    },
}

QUICK_REPLIES: Mapping[str, Mapping[bool, Sequence[str]]] = {
    "en": {
        True: ("Show all products", "New arrivals", "Best sellers", "View categories"),
        False: ("Contact support", "View store", "Help"),
    },
    "fr": {
        True: ("Voir tous les produits", "Nouveautés", "Meilleures ventes", "Voir les catégories"),
        False: ("Contacter le support", "Voir la boutique", "Aide"),
    },
    "es": {
        True: ("Ver todos los productos", "Novedades", "Más vendidos", "Ver categorías"),
        False: ("Contactar soporte", "Ver tienda", "Ayuda"),
    },
    "de": {
        True: ("Alle Produkte anzeigen", "Neuankömmlinge", "Bestseller", "Kategorien anzeigen"),
        False: ("Support kontaktieren", "Shop ansehen", "Hilfe"),
    },
    "pt": {
        True: ("Ver todos os produtos", "Novidades", "Mais vendidos", "Ver categorias"),
        False: ("Contatar suporte", "Ver loja", "Ajuda"),
    },
    "it": {
        True: ("Vedi tutti i prodotti", "Novità", "Bestseller", "Visualizza categorie"),
        False: ("Contatta supporto", "Vedi negozio", "Aiuto"),
    },
}

_INTENT_KEYS: Mapping[Intent, TemplateKey] = {
    Intent.price: _K.PRICE,
    Intent.size: _K.SIZE,
    Intent.support: _K.SUPPORT,
    Intent.greeting: _K.GREETING,
    Intent.thanks: _K.THANKS,
    Intent.comparison: _K.COMPARISON,
    Intent.availability: _K.AVAILABILITY,
}

_POLICY_KEYS: Mapping[str, Tuple[Optional[TemplateKey], TemplateKey]] = {
    "shipping": (_K.SHIPPING_INTRO, _K.SHIPPING_MISSING),
    "returns": (_K.RETURNS_INTRO, _K.RETURNS_MISSING),
    "privacy": (None, _K.PRIVACY_MISSING),
}

_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s+")


def strip_html(text: Optional[str]) -> str:
    cleaned = _TAG_RE.sub(" ", str(text or ""))
    cleaned = html.unescape(cleaned)
    return _SPACE_RE.sub(" ", cleaned).strip()


def truncate_policy_text(text: Optional[str], max_length: int) -> str:
    """Cut policy text to at most `max_length` chars, ellipsis included.

    A cut at the last `.`/`!`/`?` past the middle of the budget wins; then the
    last space past 80% of the budget; then a hard cut.
    """
    clean = strip_html(text)
    if len(clean) <= max_length:
        return clean
    if max_length <= len(ELLIPSIS):
        return clean[:max(0, max_length)]

    truncated = clean[:max_length]
    last_sentence_end = max(truncated.rfind("."), truncated.rfind("!"), truncated.rfind("?"))
    if last_sentence_end > max_length * 0.5:
        return truncated[: last_sentence_end + 1]

    window = clean[: max_length - len(ELLIPSIS)]
    last_space = window.rfind(" ")
    if last_space > max_length * 0.8:
        return window[:last_space] + ELLIPSIS
    return window + ELLIPSIS


class ResponseTemplateStore:
    def __init__(
        self,
        templates: Mapping[str, Mapping[TemplateKey, str]] = TEMPLATES,
        quick_replies: Mapping[str, Mapping[bool, Sequence[str]]] = QUICK_REPLIES,
        *,
        languages: Sequence[str] = SUPPORTED_LANGUAGES,
        policy_min_chars: Optional[int] = None,
        policy_preview_max_chars: Optional[int] = None,
    ):
        self.languages = tuple(languages)
        self._table: Dict[Tuple[str, TemplateKey], str] = {
            (language, key): text
            for language, entries in templates.items()
            for key, text in entries.items()
        }
        self._quick_replies = quick_replies
        self.policy_min_chars = int(
            policy_min_chars if policy_min_chars is not None else settings.POLICY_MIN_CHARS
        )
        self.policy_preview_max_chars = int(
            policy_preview_max_chars if policy_preview_max_chars is not None else settings.POLICY_PREVIEW_MAX_CHARS
        )
        self.validate()

    def validate(self) -> None:
        if DEFAULT_LANGUAGE not in self.languages:
            raise TemplateValidationError("English templates are mandatory")
        missing: List[str] = []
        for language in self.languages:
            for key in TemplateKey:
                if (language, key) not in self._table:
                    missing.append(f"{language}:{key.value}")
            for has_products in (True, False):
                if not (self._quick_replies.get(language) or {}).get(has_products):
                    missing.append(f"{language}:quick_replies[{has_products}]")
        if missing:
            raise TemplateValidationError(f"missing templates: {', '.join(missing)}")

    def resolve_language(self, language: Optional[str]) -> str:
        return language if language in self.languages else DEFAULT_LANGUAGE

    def render(self, language: Optional[str], key: TemplateKey, **values: str) -> str:
        text = self._table[(self.resolve_language(language), key)]
        return text.format(**values) if values else text

    def ranked_message(self, language: Optional[str], top_score: int, query: str) -> str:
        if top_score > EXCELLENT_MATCH_THRESHOLD:
            key = _K.RANKED_EXCELLENT
        elif top_score > GOOD_MATCH_THRESHOLD:
            key = _K.RANKED_GOOD
        else:
            key = _K.RANKED_GENERIC
        return self.render(language, key, query=" ".join(str(query or "").split()))

    def default_policy_message(self, language: Optional[str], kind: str) -> str:
        _, missing_key = _POLICY_KEYS[kind]
        return self.render(language, missing_key)

    def policy_message(self, language: Optional[str], kind: str, policies: Optional[ShopPolicies]) -> str:
        intro_key, missing_key = _POLICY_KEYS[kind]
        text = strip_html(getattr(policies, kind, None) if policies else None)
        if intro_key is None or len(text) <= self.policy_min_chars:
            return self.render(language, missing_key)
        preview = truncate_policy_text(text, self.policy_preview_max_chars)
        return self.render(language, intro_key, preview=preview)

    def intent_message(self, language: Optional[str], intent: Intent, policies: Optional[ShopPolicies] = None) -> str:
        if intent == Intent.shipping:
            return self.policy_message(language, "shipping", policies)
        if intent == Intent.returns:
            return self.policy_message(language, "returns", policies)
        return self.render(language, _INTENT_KEYS.get(intent, _K.DEFAULT))

    def quick_replies(self, language: Optional[str], has_products: bool) -> List[str]:
        return list(self._quick_replies[self.resolve_language(language)][bool(has_products)])

    def suggested_actions(self, language: Optional[str], has_products: bool) -> List[SuggestedAction]:
        if has_products:
            return [
                SuggestedAction(label=self.render(language, _K.ACTION_COMPARE), action="compare"),
                SuggestedAction(label=self.render(language, _K.ACTION_BROWSE_ALL), action="custom", data="browse_all"),
            ]
        return [
            SuggestedAction(
                label=self.render(language, _K.ACTION_CONTACT_SUPPORT),
                action="custom",
                data="contact_support",
            )
        ]


response_templates = ResponseTemplateStore()
