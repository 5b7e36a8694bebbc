"""
Unit tests for the structured-response parser

Tests:
- Single value extraction (namespaces, attributes, case)
- Record arrays with and without a container
- Fault and business-error detection
- Malformed input
"""
from helpdesk.utils.xml_parser import (
    detect_business_error,
    detect_fault,
    parse_float,
    parse_xml_array,
    parse_xml_value,
    unescape_entities,
)


class TestParseXmlValue:
    """Test parse_xml_value"""

    def test_plain_element(self):
        """Test inner text of the first matching element"""
        doc = "<root><deuda>150.50</deuda><deuda>99</deuda></root>"
        assert parse_xml_value(doc, "deuda") == "150.50"

    def test_namespace_prefix_and_attributes(self):
        """Test prefixed tags with attributes on the opening tag"""
        doc = '<ns2:nombreCliente xmlns:ns2="urn:x" type="string">  JUAN PEREZ </ns2:nombreCliente>'
        assert parse_xml_value(doc, "nombreCliente") == "JUAN PEREZ"

    def test_case_insensitive(self):
        """Test tag matching ignores case"""
        assert parse_xml_value("<DeudaTotal>10</DeudaTotal>", "deudatotal") == "10"

    def test_missing_element(self):
        """Test absent element returns None"""
        assert parse_xml_value("<root><a>1</a></root>", "b") is None

    def test_similar_prefix_not_matched(self):
        """Test <deudaTotal> is not returned for tag deuda"""
        assert parse_xml_value("<deudaTotal>10</deudaTotal>", "deuda") is None

    def test_malformed_input(self):
        """Test unclosed tags and empty documents yield None"""
        assert parse_xml_value("<deuda>10", "deuda") is None
        assert parse_xml_value("", "deuda") is None
        assert parse_xml_value(None, "deuda") is None


class TestParseXmlArray:
    """Test parse_xml_array"""

    def test_records_inside_container(self):
        """Test ordered record extraction"""
        doc = (
            "<consumos>"
            "<Consumo><periodo>ENE</periodo></Consumo>"
            '<Consumo id="2"><periodo>FEB</periodo></Consumo>'
            "</consumos>"
        )
        items = parse_xml_array(doc, "consumos", "Consumo")

        assert len(items) == 2
        assert parse_xml_value(items[0], "periodo") == "ENE"
        assert parse_xml_value(items[1], "periodo") == "FEB"

    def test_records_without_container(self):
        """Test fallback scan of the whole document"""
        doc = "<body><Consumo><m>1</m></Consumo><Consumo><m>2</m></Consumo></body>"
        assert len(parse_xml_array(doc, "consumos", "Consumo")) == 2

    def test_no_records(self):
        """Test empty result for documents without records"""
        assert parse_xml_array("<consumos></consumos>", "consumos", "Consumo") == []
        assert parse_xml_array(None, "consumos", "Consumo") == []


class TestFaultDetection:
    """Test detect_fault and detect_business_error"""

    def test_soap_fault(self):
        """Test faultstring message is returned"""
        doc = "<soap:Fault><faultcode>soap:Server</faultcode><faultstring>Contrato invalido</faultstring></soap:Fault>"
        assert detect_fault(doc) == "Contrato invalido"

    def test_error_wrapper_without_text(self):
        """Test error wrapper with nested markup falls back to a generic message"""
        assert detect_fault("<error><code>1</code></error>") == "Error desconocido"

    def test_no_fault(self):
        """Test clean documents"""
        assert detect_fault("<deuda>1</deuda>") is None

    def test_business_error_non_zero(self):
        """Test non-zero code returns the description"""
        doc = "<codigoError>12</codigoError><descripcionError>Contrato no existe</descripcionError>"
        assert detect_business_error(doc) == "Contrato no existe"

    def test_business_error_zero(self):
        """Test code 0 means success"""
        doc = "<codigoError>0</codigoError><descripcionError>OK</descripcionError>"
        assert detect_business_error(doc) is None


class TestHelpers:
    """Test entity decoding and number parsing"""

    def test_unescape_entities(self):
        assert unescape_entities("&lt;JUN&gt; - JUL") == "<JUN> - JUL"
        assert unescape_entities(None) == ""

    def test_parse_float(self):
        assert parse_float("1,234.50") == 1234.5
        assert parse_float("abc") == 0.0
        assert parse_float(None, default=-1.0) == -1.0
