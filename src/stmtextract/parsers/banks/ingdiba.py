"""ING-DiBa statement extractor.

Document families:
- Wertpapierabrechnung Kauf / Bezug / Verkauf
- Dividendengutschrift, Ertragsgutschrift, Zinsgutschrift
- Vorabpauschale

Joint accounts print every domestic tax once per account holder
("KapSt anteilig 50,00 %"). A pre-scan flags such documents in the document
context; the entries of a joint account carry a note saying so.
"""

import logging
from typing import Sequence

from stmtextract.core.currency import Rounding, convert, inverse_rate
from stmtextract.core.models import (
    AccountEntry,
    AccountEntryType,
    PortfolioTransactionType,
    TransferEntry,
)
from stmtextract.core.money import Money, Unit, UnitType
from stmtextract.parsers.base import BaseExtractor
from stmtextract.parsers.builder import (
    TransactionBuilder,
    require_date,
    wrap_transaction,
    wrap_transfer,
)
from stmtextract.parsers.context import DocumentContext
from stmtextract.parsers.converters import (
    as_amount,
    as_currency_code,
    as_date,
    as_exchange_rate,
    as_shares,
)
from stmtextract.parsers.document import Block, DocumentType
from stmtextract.parsers.items import TransactionItem
from stmtextract.parsers.pattern import LinePattern

logger = logging.getLogger(__name__)

IS_JOINT_ACCOUNT = "isjointaccount"
EXCHANGE_RATE = "exchangeRate"

JOINT_ACCOUNT_NOTE = "Gemeinschaftskonto"

_JOINT_ACCOUNT = LinePattern(r"KapSt anteilig 50,00 %.*")

_TRADE_DATE = (
    r"^(Ausf.hrungstag . -zeit|Ausf.hrungstag|Schlusstag . -zeit|Schlusstag) "
    r"(?P<date>\d+\.\d+\.\d{4})(?:.* (?P<time>\d+:\d+:\d+))?.*$"
)

_DOMESTIC_TAX = (
    r"(Kapitalertragsteuer|KapSt anteilig 50,00 ?%|Solidarit.tszuschlag|Kirchensteuer)"
    r"( \d+,\d+ ?%)? (?P<tax_currency>[A-Z]{3}) (?P<tax>[\d.]+,\d+)"
)

# QuSt 15,00 % (EUR 5,67) USD 6,15
_WITHHOLDING_TAX_FOREX = (
    r"QuSt \d+,\d+ % \((?P<qust_currency>[A-Z]{3}) (?P<qust>[\d.]+,\d+)\)"
    r" (?P<qust_currency_tx>[A-Z]{3}) (?P<qust_tx>[\d.]+,\d+)"
)

# QuSt 15,00 % EUR 5,67
_WITHHOLDING_TAX = r"QuSt \d+,\d+ % (?P<wht_currency>[A-Z]{3}) (?P<wht>[\d.]+,\d+)"

# withholding and domestic taxes are printed in either order
_TAX_LINE = f"^(?:{_DOMESTIC_TAX}|{_WITHHOLDING_TAX_FOREX}|{_WITHHOLDING_TAX})$"


def detect_joint_account(context: DocumentContext, lines: Sequence[str]):
    """Pre-scan: flag documents of joint accounts."""
    joint = any(_JOINT_ACCOUNT.matches(line) for line in lines)
    context.set_flag(IS_JOINT_ACCOUNT, joint)


class INGDiBaExtractor(BaseExtractor):
    """ING-DiBa securities statements."""

    def __init__(self, security_resolver=None):
        super().__init__(security_resolver)

        # printed in the footer of every document
        self.add_bank_identifier("ING-DiBa")

        self._add_buy_transaction()
        self._add_sell_transaction()
        self._add_ertragsgutschrift()
        self._add_zinsgutschrift()
        self._add_dividendengutschrift()
        self._add_advance_fee_transaction()

    def get_label(self) -> str:
        return "ING-DiBa"

    # -------------------------------------------------------------------------
    # Shared sections
    # -------------------------------------------------------------------------

    def _security_sections(self, builder: TransactionBuilder, shares: str) -> TransactionBuilder:
        """
        ISIN line, name, optional name continuation and the share count.

        The security is resolved in the share step, once the continuation
        line (if any) is known.
        """
        return (builder
                .section("isin", "wkn", "name")
                .match(r"^ISIN \(WKN\) (?P<isin>[^ ]*) \((?P<wkn>.*)\)$")
                .match(r"^Wertpapierbezeichnung (?P<name>.*)$")
                # bound for the share step
                .assign(lambda t, v: None)

                .section("name1").optional()
                .match(r"^(?P<name1>(?!Nominale).+)$")
                .assign(lambda t, v: None)

                .section("shares", "isin", "wkn", "name")
                .match(shares)
                .assign(self._set_security_and_shares))

    def _fees_section(self, builder: TransactionBuilder) -> TransactionBuilder:
        return (builder
                .section("fee", "fee_currency").multiple_times()
                .match(r"^(Handelsplatzgeb.hr|Provision|Handelsentgelt) (?P<fee_currency>[A-Z]{3}) (?P<fee>[\d.]+,\d+)$")
                .assign(lambda t, v: t.add_unit(
                    Unit(UnitType.FEE, Money.of(as_currency_code(v["fee_currency"]), as_amount(v["fee"]))))))

    def _taxes_section(self, builder: TransactionBuilder) -> TransactionBuilder:
        """Domestic and withholding taxes, one line per repetition."""
        return (builder
                .section().multiple_times()
                .match(_TAX_LINE)
                .assign(self._add_tax_line))

    # -------------------------------------------------------------------------
    # Buy / sell
    # -------------------------------------------------------------------------

    def _add_buy_transaction(self):
        doc_type = self.add_document_type(
            DocumentType(r"Wertpapierabrechnung (Kauf|Bezug).*", name="ING-DiBa Kauf"))
        block = doc_type.add_block(Block(r"^Wertpapierabrechnung (Kauf|Bezug).*$"))

        builder = TransactionBuilder().subject(lambda: TransferEntry(PortfolioTransactionType.BUY))
        self._security_sections(builder, r"^Nominale( St.ck)? (?P<shares>[\d.]+(,\d+)?).*$")

        (builder
         .section("date")
         .match(_TRADE_DATE)
         .assign(lambda t, v: t.update(date_time=as_date(v["date"], v.get("time")))))

        self._fees_section(builder)

        (builder
         .section("amount", "currency")
         .match(r"^Endbetrag zu Ihren Lasten (?P<currency>[A-Z]{3}) (?P<amount>[\d.]+,\d+)$")
         .assign(self._set_amount)

         .wrap(require_date(wrap_transfer)))

        block.set(builder)

    def _add_sell_transaction(self):
        doc_type = self.add_document_type(
            DocumentType("Wertpapierabrechnung Verkauf", detect_joint_account, name="ING-DiBa Verkauf"))
        block = doc_type.add_block(Block(r"^Wertpapierabrechnung Verkauf.*$"))

        builder = TransactionBuilder().subject(lambda: TransferEntry(PortfolioTransactionType.SELL))
        self._security_sections(builder, r"^Nominale St.ck (?P<shares>[\d.]+(,\d+)?)$")

        (builder
         .section("date")
         .match(_TRADE_DATE)
         .assign(lambda t, v: t.update(date_time=as_date(v["date"], v.get("time")))))

        self._fees_section(builder)
        self._taxes_section(builder)

        (builder
         .section("amount", "currency")
         .match(r"^Endbetrag zu Ihren Gunsten (?P<currency>[A-Z]{3}) (?P<amount>[\d.]+,\d+)$")
         .assign(self._set_amount)

         .wrap(wrap_transfer))

        block.set(builder)

    # -------------------------------------------------------------------------
    # Income
    # -------------------------------------------------------------------------

    def _add_ertragsgutschrift(self):
        doc_type = self.add_document_type(
            DocumentType("Ertragsgutschrift", detect_joint_account, name="ING-DiBa Ertragsgutschrift"))
        block = doc_type.add_block(Block(r"^Ertragsgutschrift.*$"))

        builder = TransactionBuilder().subject(lambda: AccountEntry(type=AccountEntryType.DIVIDENDS))
        self._security_sections(builder, r"^Nominale (?P<shares>[\d.]+(,\d+)?) .*$")

        (builder
         .section("date")
         .match(r"^Zahltag (?P<date>\d+\.\d+\.\d{4})$")
         .assign(lambda t, v: t.update(date_time=as_date(v["date"]))))

        # taxes are parsed before the total so that a negative total can
        # turn the entry into a tax payment
        self._taxes_section(builder)

        (builder
         .section("amount", "currency")
         .match(r"^Gesamtbetrag zu Ihren (Gunsten|Lasten) (?P<currency>[A-Z]{3}) (?P<amount>(- )?[\d.]+,\d+)$")
         .assign(self._set_total)

         .wrap(wrap_transaction))

        block.set(builder)

    def _add_zinsgutschrift(self):
        doc_type = self.add_document_type(
            DocumentType("Zinsgutschrift", detect_joint_account, name="ING-DiBa Zinsgutschrift"))
        block = doc_type.add_block(Block(r"^Zinsgutschrift.*$"))

        builder = (TransactionBuilder()
                   .subject(lambda: AccountEntry(type=AccountEntryType.INTEREST))

                   .section("isin", "wkn", "name")
                   .match(r"^ISIN \(WKN\) (?P<isin>[^ ]*) \((?P<wkn>.*)\)$")
                   .match(r"^Wertpapierbezeichnung (?P<name>.*)$")
                   .assign(lambda t, v: t.update(security=self.get_or_create_security(v)))

                   .section("date")
                   .match(r"^Zahltag (?P<date>\d+\.\d+\.\d{4})$")
                   .assign(lambda t, v: t.update(date_time=as_date(v["date"]))))

        self._taxes_section(builder)

        (builder
         .section("amount", "currency")
         .match(r"^Gesamtbetrag zu Ihren Gunsten (?P<currency>[A-Z]{3}) (?P<amount>[\d.]+,\d+)$")
         .assign(self._set_amount)

         .wrap(wrap_transaction))

        block.set(builder)

    def _add_dividendengutschrift(self):
        doc_type = self.add_document_type(
            DocumentType("Dividendengutschrift", detect_joint_account, name="ING-DiBa Dividendengutschrift"))
        block = doc_type.add_block(Block(r"^Dividendengutschrift.*$"))

        builder = TransactionBuilder().subject(lambda: AccountEntry(type=AccountEntryType.DIVIDENDS))
        self._security_sections(builder, r"^Nominale (?P<shares>[\d.]+(,\d+)?) .*$")

        (builder
         .section("date")
         .match(r"^Valuta (?P<date>\d+\.\d+\.\d{4})$")
         .assign(lambda t, v: t.update(date_time=as_date(v["date"])))

         .section("fx_amount", "fx_currency", "exchange_rate", "currency").optional()
         .match(r"^Brutto (?P<fx_currency>[A-Z]{3}) (?P<fx_amount>[\d.]+,\d+)$")
         .match(r"^Umg\. z\. Dev\.-Kurs \((?P<exchange_rate>[\d.]+,\d+)\) (?P<currency>[A-Z]{3}) ([\d.]+,\d+)$")
         .assign(self._set_dividend_gross_value))

        self._taxes_section(builder)

        (builder
         .section("amount", "currency")
         .match(r"^Gesamtbetrag zu Ihren Gunsten (?P<currency>[A-Z]{3}) (?P<amount>[\d.]+,\d+)$")
         .assign(self._set_amount)

         .wrap(wrap_transaction))

        block.set(builder)

    def _add_advance_fee_transaction(self):
        doc_type = self.add_document_type(DocumentType("Vorabpauschale", name="ING-DiBa Vorabpauschale"))
        block = doc_type.add_block(Block(r"^Vorabpauschale.*$"))

        # ISIN (WKN) IE00BKPT2S34 (A2P1KU)
        # Wertpapierbezeichnung iShsIII-Gl.Infl.L.Gov.Bd U.ETF
        # Reg. Shs HGD EUR Acc. oN
        # Nominale 378,00 Stück
        builder = TransactionBuilder().subject(lambda: AccountEntry(type=AccountEntryType.TAXES))
        self._security_sections(builder, r"^Nominale (?P<shares>[\d.]+(,\d+)?) .*$")

        (builder
         # Ex-Tag 04.01.2021
         .section("date")
         .match(r"^Ex-Tag (?P<date>\d+\.\d+\.\d{4})$")
         .assign(lambda t, v: t.update(date_time=as_date(v["date"])))

         # Gesamtbetrag zu Ihren Lasten EUR - 0,16
         .section("currency", "tax", "sign").optional()
         .match(r"^Gesamtbetrag zu Ihren Lasten (?P<currency>[A-Z]{3}) (?P<sign>[-\s]*)(?P<tax>[.,\d]+)$")
         .assign(self._set_advance_fee)

         .wrap(lambda t: TransactionItem(t) if t.currency_code is not None and t.amount != 0 else None))

        block.set(builder)

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    def _set_security_and_shares(self, t, v):
        values = {"isin": v["isin"], "wkn": v["wkn"], "name": v["name"]}
        name1 = v.get("name1")
        if name1 is not None and not name1.startswith("Nominale"):
            values["name"] = f"{v['name']} {name1}"
        t.update(security=self.get_or_create_security(values), shares=as_shares(v["shares"]))

    @staticmethod
    def _set_amount(t, v):
        t.update(currency_code=as_currency_code(v["currency"]), amount=as_amount(v["amount"]))

    @staticmethod
    def _set_total(t, v):
        """A negative total turns the entry into a tax payment of the attached taxes."""
        currency = as_currency_code(v["currency"])
        if not v["amount"].startswith("-"):
            t.update(currency_code=currency, amount=as_amount(v["amount"]))
            return

        taxes = t.unit_sum(UnitType.TAX, currency)
        t.update(type=AccountEntryType.TAXES)
        t.clear_units()
        t.monetary_amount = taxes

    def _add_tax_line(self, t, v):
        if v.get("qust") is not None:
            self._add_withholding_tax(t, v)
        elif v.get("wht") is not None:
            t.add_unit(Unit(UnitType.TAX, Money.of(as_currency_code(v["wht_currency"]), as_amount(v["wht"]))))
        else:
            self._add_domestic_tax(t, v)

    @staticmethod
    def _add_domestic_tax(t, v):
        t.add_unit(Unit(UnitType.TAX, Money.of(as_currency_code(v["tax_currency"]), as_amount(v["tax"]))))
        if v.document.flag(IS_JOINT_ACCOUNT) and t.note is None:
            t.update(note=JOINT_ACCOUNT_NOTE)

    @staticmethod
    def _add_withholding_tax(t, v):
        """
        Withholding tax printed in both currencies.

        The amount in parentheses is in the settlement currency. With a
        stored exchange rate the foreign amount is kept as the forex pair.

        Example:
            QuSt 15,00 % (EUR 10,53) USD 11,28
        """
        tax = Money.of(as_currency_code(v["qust_currency"]), as_amount(v["qust"]))
        tax_tx = Money.of(as_currency_code(v["qust_currency_tx"]), as_amount(v["qust_tx"]))

        # the total is parsed last; until then the printed currency decides
        settlement = t.currency_code or tax.currency_code
        if tax.currency_code != settlement:
            logger.warning(f"Withholding tax {tax} not in settlement currency {settlement}, skipped")
            return

        rate = v.document.get_decimal(EXCHANGE_RATE)
        if rate is None or tax_tx.currency_code == settlement:
            t.add_unit(Unit(UnitType.TAX, tax))
            return

        t.add_unit(Unit(UnitType.TAX, tax, tax_tx, inverse_rate(rate, rounding=Rounding.HALF_DOWN)))

    @staticmethod
    def _set_dividend_gross_value(t, v):
        """
        Gross value of a foreign dividend.

        Example:
            Brutto USD 75,20
            Umg. z. Dev.-Kurs (1,0708) EUR 70,23
        """
        exchange_rate = as_exchange_rate(v["exchange_rate"])
        v.document.put_decimal(EXCHANGE_RATE, exchange_rate)

        currency = as_currency_code(v["currency"])
        if t.currency_code is None:
            t.update(currency_code=currency)
        if t.security is None or t.security.currency_code == currency:
            return

        fx_amount = Money.of(as_currency_code(v["fx_currency"]), as_amount(v["fx_amount"]))
        rate = inverse_rate(exchange_rate, rounding=Rounding.HALF_DOWN)
        amount = Money.of(currency, convert(fx_amount.amount, rate, rounding=Rounding.HALF_UP))
        t.add_unit(Unit(UnitType.GROSS_VALUE, amount, fx_amount, rate))

    @staticmethod
    def _set_advance_fee(t, v):
        t.update(currency_code=as_currency_code(v["currency"]), amount=as_amount(v["tax"]))
        if not v["sign"].strip():
            # no minus sign: the tax is refunded
            t.update(type=AccountEntryType.TAX_REFUND)
