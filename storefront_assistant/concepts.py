"""
Vocabulary tables used to densify shopper queries before embedding.

COLOR_CONCEPTS maps a canonical Spanish color adjective to the color names
used by the catalog's variant options. PRODUCT_CONCEPTS maps a canonical
product term to the colloquial words shoppers use for it. Multi-word forms
are written with spaces and matched as whole phrases.
"""

COLOR_CONCEPTS = {
    "amarillo": [
        "gold honey",
        "illuminating",
        "illuminating/fair aqua",
        "illuminating/navy blue",
        "light yellow",
        "light yellow/blue",
        "light yellow/fair aqua",
        "light yellow/illuminating",
        "spring",
        "spring/royal",
        "spring/spring",
        "yellow",
        "yellow fluor",
        "yellow fluor/black",
    ],
    "azul": [
        "blue",
        "blue river/bluemoon",
        "blue/orange",
        "celestial",
        "celestial/illuminating",
        "ceramic",
        "ceramic/atlantic",
        "ceramic/ceramic",
        "ceramic/ceramic/fucsia",
        "ceramic/dark purple",
        "ceramic/fucsia fluor",
        "coronet blue",
        "coronet blue/light blue",
        "fair aqua",
        "fair aqua/diva pink",
        "fair aqua/light yellow",
        "fair aqua/yellow",
        "grey blue/diva pink",
        "ink blue",
        "light blue",
        "light blue/blue",
        "light blue/coral fluor",
        "light blue/coronet blue",
        "light blue/navy blue",
        "mineral blue",
        "mineral blue/light blue",
        "sky blue",
        "turquoise",
        "turquoise/charcoal",
        "turquoise/smoke",
        "turquoise/turquoise",
        "atlantic",
        "atlantic/ceramic",
        "atlantic/lima",
        "atlantic/opal/lima",
        "blue indigo/diva pink",
        "bluemoon",
        "bluemoon/coral fluor",
        "bluemoon/dark blue",
        "bluemoon/silver",
        "dark aqua",
        "dark aqua/red",
        "dark blue",
        "grey blue/orange",
        "jeans",
        "light blue/ice/navy blue",
        "navy blue",
        "navy blue degraded",
        "navy blue/aqua",
        "navy blue/blue",
        "navy blue/celestial/illuminati",
        "navy blue/coral fluor",
        "navy blue/fair aqua",
        "navy blue/gold honey",
        "navy blue/honey",
        "navy blue/illuminating",
        "navy blue/light blue",
        "navy blue/light blue/coral",
        "navy blue/light blue/diva pink",
        "navy blue/rose",
        "navy blue/fair aqua",
        "navy/spring",
        "royal",
        "royal/coral fluor",
        "royal/royal",
        "royal/spring",
        "royal/white/srping",
    ],
    "beige": [
        "alfalfa/hielo",
        "aluminio",
        "aluminium/tapioca",
        "aliminium",
        "beige",
        "beige/rose",
        "stone",
        "tapioca",
        "tapioca/brown",
        "toasted",
        "tostado",
        "tostado/alfalfa",
    ],
    "blanco": [
        "hielo/alfalfa",
        "white",
        "white/atlantic",
        "white/black",
        "white/blue",
        "white/diva pink",
        "white/fair aqua",
        "white/gold",
        "white/lilac",
        "white/menta",
        "white/menta",
        "white/multicolor",
        "white/multicolour",
        "white/navy blue",
        "white/purple",
        "white/silver",
        "white/smoke/black",
        "white/white",
        "white/yellow fluor",
    ],
    "gris": [
        "aluminio metal",
        "aluminum/tapioca",
        "charcoal",
        "charcoal/lotus",
        "charcoal/orange",
        "dark grey",
        "dark grey/black",
        "dark grey/orange",
        "grey",
        "grey lilac",
        "ice",
        "silver",
        "silver/black",
        "silver/diva pink",
        "smoke",
        "smoke/black",
        "smoke/black/red",
        "smoke/blue river",
        "smoke/ceramic",
        "smoke/diva pink",
        "smoke/lotus",
        "smoke/orange",
        "smoke/silver/lotus",
        "smoke/turquoise",
    ],
    "marron": [
        "almendra",
        "brown",
        "brown/dark brown",
        "chocolate",
        "natural",
        "natural/chocolate",
    ],
    "morado": [
        "dark purple",
        "grey lilac/diva pink",
        "lavanda",
        "lilac",
        "lilac grey",
        "lilac/diva pink",
        "lilac/purple",
        "lilac/violet",
        "orquidea",
        "purple",
        "violet",
        "violet/diva pink",
        "violet/grey lilac",
        "violet/lilac",
        "wine",
    ],
    "multicolor": [
        "autumnal",
        "dark atlantic/fair aqua/diva pink",
        "logo",
        "multicolor",
        "multicolor 2",
        "multicolor 3",
        "pilar",
        "virgen",
    ],
    "naranja": [
        "apricot",
        "cheddar",
        "coral",
        "coral fluor",
        "coral fluor/navy blue",
        "coral/jade",
        "coral/wine",
        "light orange",
    ],
    "negro": [
        "black",
        "black/black",
        "black/dark grey",
        "black/dark grey/orange",
        "black/dark grey/royal",
        "black/diva pink",
        "black/fucsia",
        "black/grey",
        "black/light green",
        "black/lilac",
        "black/orange",
        "black/red",
        "black/royal",
        "black/silver",
        "black/smoke",
        "black/white",
        "black/yellow fluor",
    ],
    "rojo": [
        "barberry",
        "barberry/diva pink",
        "beet red/diva pink",
        "cherry",
        "magenta",
        "mineral red",
        "mineral red/diva pink",
        "red",
        "red/black",
        "red/red",
        "red/smoke",
    ],
    "rosa": [
        "crystal pink",
        "crystal pink/rose",
        "diva pink",
        "diva pink/beet red",
        "diva pink/magenta",
        "diva pink/mineral red",
        "diva pink/smoke",
        "fucsia",
        "fucsia fluor",
        "fucsia fluor/yellow fluor",
        "fucsia/black",
        "fucsia/fucsia",
        "light rose",
        "lotus",
        "lotus/silver",
        "magenta/diva pink",
        "pink",
        "pink fluor",
        "pink/silver",
        "raspberry",
        "rose",
        "rose/dark rose",
        "rose/ice/brown",
        "rose/light rose",
    ],
    "verde": [
        "alfalfa",
        "alfalfa/lime",
        "atlantic degraded",
        "caki",
        "caki/dark caki",
        "dark atlantic",
        "dark atlantic/diva pink",
        "fair aqua",
        "fair aqua/dark atlantic",
        "fair aqua/dark atlantic/diva pink",
        "fair aqua/fucsia",
        "green",
        "green/atlantic",
        "green/fucsia",
        "jade",
        "light caki",
        "light caki/peach",
        "light green",
        "light lime",
        "light matcha/matcha",
        "light menta",
        "light menta/mineral blue",
        "lima",
        "lima/atlantic",
        "lime",
        "lime/royal",
        "matcha",
        "menta",
        "menta/atlantic",
        "menta/light yellow",
        "menta/wasabi",
        "menta/yellow",
        "mineral blue/light menta",
        "oil",
        "opal",
        "opal/atlantic",
        "pino/naranja",
        "wasabi",
    ],
}

PRODUCT_CONCEPTS = {
    "capucha": ["gorro"],
    "chaqueta": ["chamarra", "zamarra"],
    "tercera capa": ["abrigo", "anorak", "chaquetón", "cazadora"],
    "tubular": ["cuello", "braga", "calentador de cuello"],
    "bufanda": ["bufanda"],
    "zapatillas": [
        "zapatilla",
        "deportivas",
        "bambas",
        "tenis",
        "playeras",
        "zapato",
        "calzado",
        "maripí",
        "maripíes",
        "maripís",
    ],
    "mochila": ["bolsa"],
    "pala": ["raqueta"],
    "chaqueta de fibra": ["chaqueta de pluma", "plumas", "plumífero", "plumíferos", "bomber"],
    "chaqueta rellena": ["chaqueta de pluma", "plumas", "plumífero", "plumíferos", "bomber"],
    "frosty": ["escarpines", "cangrejeras"],
    "chaqueta impermeable": ["chubasquero"],
    "polo": ["niqui"],
    "botas de trekking": ["botas de monte", "calzado"],
    "botas": ["calzado"],
    "chanclas": ["calzado"],
    "pantuflas": ["calzado"],
    "sandalias": ["calzado"],
    "trekking": ["senderismo"],
    "bastones": ["palos"],
    "pantalón trekking": ["pantalón de montaña", "pantalon de montaña"],
    "zapatillas de descanso": ["zuecos", "zapatillas casa", "alpargatas"],
    "mallas": ["leggins", "leggings", "legins", "legings"],
    "polar": ["forro"],
    "chaqueta larga": ["parka"],
    "mount-tex": ["goretex"],
    "chaqueta de punto": ["rebeca"],
}

# Shopper spelling -> catalog option value
SIZE_TOKENS = {
    "xxl": "2xl",
    "xxxl": "3xl",
    "xxxxl": "4xl",
}
