from tmgmt_connect.translation.escaper import Escaper, designate_spans

START = '<lang_connector translate="no">'
END = '</lang_connector>'


def make_escaper(patterns=None):
    return Escaper(START, END, patterns=patterns)


def test_escape_wraps_spans_right_to_left():
    escaper = make_escaper()
    text = "Hello [name], see [link]"
    escape = {6: {"string": "[name]"}, 18: {"string": "[link]"}}
    assert escaper.escape(text, escape) == (
        f"Hello {START}[name]{END}, see {START}[link]{END}"
    )


def test_escape_accepts_string_positions():
    escaper = make_escaper()
    assert escaper.escape("a {x}", {"2": {"string": "{x}"}}) == f"a {START}{{x}}{END}"


def test_unescape_reverses_escape():
    escaper = make_escaper()
    text = "Keep <b>this</b> and\nthat"
    escape = {5: {"string": "<b>this</b>"}, 21: {"string": "that"}}
    assert escaper.unescape(escaper.escape(text, escape)) == text


def test_unescape_spans_newlines():
    escaper = make_escaper()
    assert escaper.unescape(f"x {START}a\nb{END} y") == "x a\nb y"


def test_unescape_leaves_plain_text():
    assert make_escaper().unescape("plain text") == "plain text"


def test_decode_result_order():
    escaper = make_escaper()
    raw = "Caf&eacute; %C3%A9 a+b &lt;lang_connector translate=&quot;no&quot;&gt;{x}&lt;/lang_connector&gt;"
    assert escaper.decode_result(raw) == "Café é a+b {x}"


def test_escape_item_uses_escape_property():
    escaper = make_escaper()
    item = {"#text": "Hi @user", "#escape": {3: {"string": "@user"}}}
    assert escaper.escape_item(item) == f"Hi {START}@user{END}"


def test_escape_item_designates_spans_from_patterns():
    escaper = make_escaper(patterns=[r"\{\w+\}"])
    assert escaper.escape_item({"#text": "Hi {name}!"}) == f"Hi {START}{{name}}{END}!"


def test_escape_item_without_spans_is_identity():
    assert make_escaper(patterns=[r"\{\w+\}"]).escape_item({"#text": "Nothing here"}) == "Nothing here"


def test_designate_spans_skips_overlaps():
    spans = designate_spans("see {{name}} now", [r"\{\{\w+\}\}", r"\{\w+\}"])
    assert spans == {4: {"string": "{{name}}"}}


def test_xtm_sentinels():
    escaper = Escaper('<xtm_connect translate="no">', '</xtm_connect>')
    assert escaper.decode_result('A <xtm_connect translate="no">B</xtm_connect> C') == "A B C"
