import logging
import random
import secrets

from sms.errors import IdentifierExhausted

logger = logging.getLogger(__name__)

ADJECTIVES = """
    abundant adorable adventurous agreeable alert alive amused attractive average beautiful better
    blushing boiling brainy brave breezy bright bumpy busy calm careful cautious charming cheerful
    chilly clean clear clever cloudy cold colourful comfortable cool courageous crazy crowded cuddly
    curious curly cute damp dark delightful determined different difficult doubtful drab dry dusty
    eager elated elegant enchanting encouraging energetic enthusiastic excited expensive exuberant
    fair faithful famous fancy fantastic few fine flaky fluffy fluttering fragile frail freezing
    fresh friendly funny fuzzy gentle gifted glamorous gleaming glorious good gorgeous graceful
    handsome happy healthy heavy helpful helpless hilarious homely hot icy important innocent
    inquisitive jolly joyous juicy kind light lively long loose lovely lucky magnificent misty
    modern motionless muddy mushy nice obedient odd outstanding perfect plain plastic pleasant
    poised poor powerful precious prickly proud puzzled quaint real relieved rich rough salty shaggy
    shaky sharp shiny shivering shy silky silly sleepy slippery smiling smooth soft solid sparkling
    splendid spotless steady sticky stormy strange strong successful super sweet talented tame
    tender thankful thirsty thoughtful tight tough uninterested unusual vast victorious vivacious
    wandering warm weak wet wild witty wonderful wooden yummy zany zealous
""".split()

ANIMALS = """
    aardvark agouti albatross alpaca antelope armadillo avocet baboon badger bandicoot barbet
    barracuda bat bear beaver bee bison blackbird blackbuck blesbok boar broket buffalo bulbul
    bunting butterfly camel capuchin caracara cardinal caribou cat caterpillar catfish chamois
    cheetah chimpanzee chinchilla chipmunk chough civet clam cockatoo cod colobus coot coqui
    cormorant cougar coyote crab crake crane crocodile crow curlew deer dog dolphin donkey
    dotterel dove duck dugong dunlin eagle echidna eel egret eland elephant elk emu falcon ferret
    finch flamingo fox frog galah gaur gazelle gecko genet gerbil giraffe gnat gnu goat godwit
    goldfish goose gorilla grouse gull hamster hare hawk hedgehog heron herring hoopoe horse huron
    hyena hyrax ibex ibis iguana impala jacana jackal jaeger jaguar jay kangaroo kite koala kudu
    langur lapwing lark lechwe lemming lemur leopard lion llama lobster loris lory lourie lynx
    macaque macaw magpie mallard manatee mara margay marmot marten meerkat mink mongoose monitor
    monkey moorhen moose mouflon mouse mynah narwhal newt nilgai numbat nyala ocelot octopus okapi
    onager opossum orca oribi oryx osprey ostrich otter owl ox oyster paca parakeet parrot
    peacock pelican penguin pheasant pie pigeon platypus pony porpoise possum puffin puku puma
    quail quelea quoll rabbit raccoon raven rhea robin salmon sambar sardine seal serval sheep
    shrew shrimp siskin skink skua sparrow squid stork swallow swan tapir tayra tern tiger topi
    toucan trout turaco turtle urial vicuna wagtail wallaby walrus weaver whale wombat wren yak
    zebra zorilla zorro
""".split()

ALIAS_MAX_LENGTH = 12


def adjective_animal(max_length=ALIAS_MAX_LENGTH, rng=random):
    """
    Random human-readable name such as "brave otter".

    Words are separated by a space so the alias is unchanged by
    clean_response() when the respondent types it back.
    """
    for _ in range(10000):
        name = f"{rng.choice(ADJECTIVES)} {rng.choice(ANIMALS)}"
        if len(name) <= max_length:
            return name
    raise IdentifierExhausted(f"No adjective-animal name fits in {max_length} characters")


def evidence_token():
    return secrets.token_hex(8)


def generate_unique(generate, exists, max_attempts, what="identifier"):
    """
    Generate-and-check until `exists(candidate)` is false.

    Bounded: after `max_attempts` collisions IdentifierExhausted is raised.
    """
    for attempt in range(1, max_attempts + 1):
        candidate = generate()
        if not exists(candidate):
            return candidate
        logger.debug("%s collision on attempt %d", what, attempt)

    raise IdentifierExhausted(f"Could not find an unused {what} in {max_attempts} attempts")
