"""Output of the (external) document parser, consumed by Index.add_document."""

from pydantic import BaseModel

from ragstore.models.Document import Document
from ragstore.models.Node import Node
from ragstore.models.Section import Section
from ragstore.models.sources import SourceData


class ParsedDocument(BaseModel):
    """
    A document together with the sections and nodes extracted from it.

    Attributes:
        document:      The document row.
        sections:      Its sections.
        nodes:         Its nodes.
        section_count: Number of sections produced by the parser.
        node_count:    Number of nodes produced by the parser.
        total_tokens:  Sum of node tokens.
        input_uri:     Where the parser read the document from.
    """

    document: Document
    sections: list[Section] = []
    nodes: list[Node] = []
    section_count: int = 0
    node_count: int = 0
    total_tokens: int = 0
    input_uri: str = ""

    @classmethod
    def build(cls, document: Document, sections: list[Section], nodes: list[Node]) -> "ParsedDocument":
        """Create a parsed document with the counters derived from its parts."""
        return cls(
            document=document,
            sections=sections,
            nodes=nodes,
            section_count=len(sections),
            node_count=len(nodes),
            total_tokens=sum(node.tokens for node in nodes),
            input_uri=document.source_uri,
        )

    def to_source_document(self) -> SourceData:
        return SourceData.documents([self.document])

    def to_source_sections(self) -> SourceData:
        return SourceData.sections(self.sections)

    def to_source_nodes(self) -> SourceData:
        return SourceData.nodes(self.nodes)
