"""
Known-word list for the local spell checker.

Small on purpose: the heuristics only accept a correction when the
candidate is in this set, so a word missing from it is left alone rather
than "fixed" into something wrong.
"""

COMMON_ENGLISH_WORDS = frozenset("""
a an the
i you he she it we they me him her us them my your his its our their mine yours hers ours theirs
myself yourself himself herself itself ourselves yourselves themselves this that these those
am is are was were be been being have has had having do does did doing done
will would shall should may might can could must
go goes went going gone get gets got getting gotten make makes made making
take takes took taking taken come comes came coming see sees saw seeing seen
know knows knew knowing known think thinks thought thinking say says said saying
tell tells told telling want wants wanted wanting give gives gave giving given
use uses used using find finds found finding work works worked working
call calls called calling try tries tried trying ask asks asked asking
need needs needed needing feel feels felt feeling become becomes became becoming
leave leaves left leaving put puts putting mean means meant meaning
keep keeps kept keeping let lets letting begin begins began beginning begun
seem seems seemed seeming help helps helped helping talk talks talked talking
turn turns turned turning start starts started starting show shows showed showing shown
hear hears heard hearing play plays played playing run runs ran running
move moves moved moving live lives lived living believe believes believed believing
hold holds held holding bring brings brought bringing happen happens happened happening
write writes wrote writing written provide provides provided providing
sit sits sat sitting stand stands stood standing lose loses lost losing
pay pays paid paying meet meets met meeting include includes included including
continue continues continued continuing set sets setting learn learns learned learning
change changes changed changing lead leads led leading
understand understands understood understanding watch watches watched watching
follow follows followed following stop stops stopped stopping create creates created creating
speak speaks spoke speaking spoken read reads reading allow allows allowed allowing
add adds added adding spend spends spent spending grow grows grew growing grown
open opens opened opening walk walks walked walking win wins won winning
offer offers offered offering remember remembers remembered remembering
love loves loved loving consider considers considered considering
appear appears appeared appearing buy buys bought buying wait waits waited waiting
serve serves served serving die dies died dying send sends sent sending
expect expects expected expecting build builds built building stay stays stayed staying
fall falls fell falling fallen cut cuts cutting reach reaches reached reaching
remain remains remained remaining receive received separate separated
recommend occur occurred occasion plan planned
time person people year way day thing man men world life hand part child children eye
woman women place week case point government company number group problem fact
friend friends family home house room door window table food water money story
idea question answer reason example end side kind head face voice word words
mind heart body car city country morning night afternoon evening
environment development business beginning calendar address community knowledge
language maintenance parliament privilege responsibility temperature guarantee
millennium perseverance questionnaire restaurant schedule vacuum existence
good new first last long great little own other old right big high different
small large next early young important few public bad same able
beautiful ugly happy sad angry excited tired hungry thirsty sick healthy strong weak
smart stupid clever funny serious interesting boring hot cold warm cool fast slow
quick easy hard difficult simple complex nice quiet thorough awhile
form forms dose tow
red blue green yellow orange purple pink brown black white gray
necessary definitely independent weird successful possible professional apparent
beginner annual excellent embarrassing unfortunately occasionally
to of in for on with as at but by from up about into over after beneath under above
and that not or if unless although though however therefore thus so yet
how what where when why who which whose whom
today tomorrow yesterday now then here there everywhere nowhere
something nothing anything everything someone anyone everyone
very really quite rather pretty much many more most less
well better best worse worst far near close away around
between among during before while until since because
through without below down out off back also just only even still again
all each every both some any no yes not never always often sometimes
please thank thanks sorry excuse hello hi hey goodbye bye welcome
monday tuesday wednesday thursday friday saturday sunday
january february march april june july august september october november december
one two three four five six seven eight nine ten
eleven twelve thirteen fourteen fifteen sixteen seventeen eighteen nineteen twenty
thirty forty fifty sixty seventy eighty ninety hundred thousand million
second third fourth fifth sixth seventh eighth ninth tenth
school student students teacher teachers class classes lesson homework assignment test exam
grade study learn education book paper essay paragraph sentence thesis
university college subject course degree graduation scholarship
research source sources citation outline draft conclusion introduction argument evidence
""".split())


def is_valid_english_word(word: str) -> bool:
    """Known word, or a regular inflection / contraction of one."""
    clean = ''.join(c for c in word.lower() if c.isalpha())
    if not clean:
        return False
    if clean in COMMON_ENGLISH_WORDS:
        return True

    if "'" in word:
        return word.split("'")[0].lower() in COMMON_ENGLISH_WORDS

    if clean.endswith('s') and len(clean) > 3 and clean[:-1] in COMMON_ENGLISH_WORDS:
        return True

    if clean.endswith('ing') and len(clean) > 4:
        base = clean[:-3]
        if base in COMMON_ENGLISH_WORDS or base + 'e' in COMMON_ENGLISH_WORDS:
            return True
        # running -> run
        if len(base) >= 3 and base[-1] == base[-2] and base[:-1] in COMMON_ENGLISH_WORDS:
            return True

    if clean.endswith('ed') and len(clean) > 3:
        base = clean[:-2]
        if base in COMMON_ENGLISH_WORDS or base + 'e' in COMMON_ENGLISH_WORDS:
            return True

    if clean.endswith('ly') and len(clean) > 3 and clean[:-2] in COMMON_ENGLISH_WORDS:
        return True

    return False
