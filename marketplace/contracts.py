"""
Collaboration agreement PDFs (work for hire and podcast guest release).
"""
import io
import logging
from dataclasses import dataclass
from typing import List
from xml.sax.saxutils import escape

from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import ListFlowable, ListItem, PageBreak, Paragraph, SimpleDocTemplate, Spacer

logger = logging.getLogger("marketplace")


@dataclass
class ContractData:
    buyer_name: str
    buyer_email: str
    seller_name: str
    seller_email: str
    service_description: str
    price: float
    collaboration_id: str
    created_date: str
    type: str = ""


class ContractPDFGenerator:
    """Shared layout for the agreement documents"""

    def __init__(self, data: ContractData):
        self.data = data
        self.margin = 0.7 * inch
        self.dark_gray = colors.HexColor("#1e293b")

        styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "ContractTitle",
            parent=styles["Heading1"],
            fontSize=20,
            alignment=1,  # Center
            spaceAfter=12,
        )
        self.centered_style = ParagraphStyle(
            "ContractCentered",
            parent=styles["Normal"],
            fontSize=11,
            alignment=1,
            spaceAfter=6,
        )
        self.heading_style = ParagraphStyle(
            "ContractHeading",
            parent=styles["Heading2"],
            fontSize=13,
            textColor=self.dark_gray,
            spaceBefore=14,
            spaceAfter=6,
        )
        self.body_style = ParagraphStyle(
            "ContractBody",
            parent=styles["Normal"],
            fontSize=10.5,
            leading=14,
            textColor=self.dark_gray,
            spaceAfter=6,
        )
        self.label_style = ParagraphStyle(
            "ContractLabel",
            parent=self.body_style,
            fontName="Helvetica-Bold",
            spaceAfter=2,
        )
        self.footer_style = ParagraphStyle(
            "ContractFooter",
            parent=styles["Normal"],
            fontSize=8,
            textColor=colors.gray,
            alignment=1,
        )

    def title(self, text: str) -> List:
        return [Paragraph(escape(text), self.title_style)]

    def heading(self, text: str) -> Paragraph:
        return Paragraph(f"<u>{escape(text)}</u>", self.heading_style)

    def para(self, text: str) -> Paragraph:
        return Paragraph(escape(text), self.body_style)

    def bullets(self, items: List[str]) -> ListFlowable:
        return ListFlowable(
            [ListItem(self.para(item), leftIndent=12) for item in items],
            bulletType="bullet",
            start="-",
            leftIndent=14,
        )

    def party(self, label: str, name: str, email: str) -> List:
        return [
            Paragraph(escape(label), self.label_style),
            self.para(f"Name: {name}"),
            self.para(f"Email: {email}"),
            Spacer(1, 0.1 * inch),
        ]

    def signature_block(self, label: str, name: str) -> List:
        return [
            Paragraph(escape(label), self.label_style),
            self.para("Signature: _________________________________"),
            self.para(f"Name: {name}"),
            self.para("Date: _________________________________"),
            Spacer(1, 0.4 * inch),
        ]

    def signatures(self, first: tuple, second: tuple) -> List:
        story = [
            PageBreak(),
            Paragraph("<u>SIGNATURES</u>", self.title_style),
            self.para(
                "By signing below, both parties acknowledge that they have read, understood, "
                "and agree to be bound by the terms of this Agreement."
            ),
            Spacer(1, 0.3 * inch),
        ]
        story += self.signature_block(*first)
        story += self.signature_block(*second)
        story += [
            Paragraph(escape(f"Contract ID: {self.data.collaboration_id}"), self.footer_style),
            Paragraph(escape(f"Generated via {settings.PLATFORM_NAME} Platform"), self.footer_style),
        ]
        return story

    def build(self, story: List, title: str) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=title,
        )
        doc.build(story)
        pdf = buffer.getvalue()
        logger.info(f"Generated {title} for {self.data.collaboration_id} ({len(pdf)} bytes)")
        return pdf


def generate_contract_pdf(data: ContractData) -> bytes:
    """Work for Hire agreement between a buyer and a legend."""
    pdf = ContractPDFGenerator(data)
    price = f"${float(data.price):,.2f} USD"
    commission = int(round(settings.PLATFORM_COMMISSION_RATE * 100))

    story = pdf.title("MUSIC COLLABORATION AGREEMENT")
    story.append(Paragraph(escape(f"Agreement Date: {data.created_date}"), pdf.centered_style))
    story.append(Spacer(1, 0.2 * inch))

    story.append(pdf.heading("PARTIES"))
    story.append(pdf.para(
        f"This Work for Hire Agreement (\"Agreement\") is entered into as of {data.created_date} by and between:"
    ))
    story += pdf.party("BUYER (Artist/Client):", data.buyer_name, data.buyer_email)
    story += pdf.party("SELLER (Legend/Service Provider):", data.seller_name, data.seller_email)

    story.append(pdf.heading("1. SERVICE DESCRIPTION"))
    story.append(pdf.para(f"Seller agrees to provide the following service to Buyer: {data.service_description}"))
    story.append(pdf.para(f"Total Service Fee: {price}"))

    story.append(pdf.heading("2. WORK FOR HIRE - MASTER OWNERSHIP"))
    story.append(pdf.para(
        "The parties agree that all musical recordings, performances, and sound recordings created under "
        "this Agreement (\"the Work\") shall be considered a \"work made for hire\" as defined under U.S. "
        "Copyright Law (17 U.S.C. 101)."
    ))
    story.append(pdf.para(
        "Buyer shall own all right, title, and interest in and to the master recording, including but not limited to:"
    ))
    story.append(pdf.bullets([
        "The exclusive right to reproduce, distribute, and publicly perform the master recording",
        "The right to create derivative works from the master recording",
        "The right to exploit the master recording in all media now known or hereafter devised",
        "The right to register copyright in the master recording in Buyer's name",
    ]))

    story.append(pdf.heading("3. PUBLISHING RIGHTS - SONGWRITER SHARE"))
    story.append(pdf.para(
        "Notwithstanding the master ownership provisions above, Seller retains 100% of the songwriter's "
        "share (writer's share) of any musical compositions embodied in the Work."
    ))
    story.append(pdf.para(
        "Seller shall have the right to register their writer's share with their performing rights "
        "organization (PRO) of choice (ASCAP, BMI, SESAC, etc.)."
    ))
    story.append(pdf.para(
        "Publisher's share and administration rights shall be negotiated separately if applicable, and are "
        "not covered by this Agreement unless specifically stated in writing."
    ))

    story.append(pdf.heading("4. CREDIT AND ATTRIBUTION"))
    story.append(pdf.para(
        f"Buyer agrees to provide Seller with appropriate credit on all commercial releases of the Work, in "
        f"substantially the following format: \"Produced by {data.seller_name}\" or \"Featuring "
        f"{data.seller_name}\" as applicable to the service provided."
    ))
    story.append(pdf.para(
        "Credit shall be provided in liner notes, digital metadata (ID3 tags), and any other crediting "
        "systems used for the release."
    ))

    story.append(pdf.heading("5. DELIVERABLES AND TIMELINE"))
    story.append(pdf.para(
        f"Seller agrees to deliver the completed Work through the {settings.PLATFORM_NAME} platform within a "
        f"reasonable timeframe as communicated through the collaboration hub."
    ))
    story.append(pdf.para(
        "All deliverables shall be provided in industry-standard formats as specified in the service description."
    ))

    story.append(pdf.heading("6. PAYMENT AND ESCROW"))
    story.append(pdf.para(
        f"Buyer has paid the total service fee of {price}, which is currently held in escrow by "
        f"{settings.PLATFORM_NAME}."
    ))
    story.append(pdf.para(
        f"Upon completion of the Work and Buyer's acceptance, {settings.PLATFORM_NAME} will release payment "
        f"to Seller minus the platform commission ({commission}%)."
    ))

    story.append(pdf.heading("7. WARRANTIES AND REPRESENTATIONS"))
    story.append(pdf.para("Seller warrants and represents that:"))
    story.append(pdf.bullets([
        "The Work is original and does not infringe upon any third-party rights",
        "Seller has the full right and authority to enter into this Agreement",
        "The Work does not contain any unlicensed samples or unauthorized copyrighted material",
        "Seller will indemnify Buyer against any claims arising from breach of these warranties",
    ]))

    story.append(pdf.heading("8. DISPUTE RESOLUTION"))
    story.append(pdf.para(
        f"Any disputes arising under this Agreement shall first be addressed through "
        f"{settings.PLATFORM_NAME}'s dispute resolution process. If unresolved, the parties agree to binding "
        f"arbitration in accordance with the rules of the American Arbitration Association."
    ))

    story.append(pdf.heading("9. ENTIRE AGREEMENT"))
    story.append(pdf.para(
        "This Agreement constitutes the entire agreement between the parties and supersedes all prior "
        "negotiations, representations, or agreements. This Agreement may only be modified in writing "
        "signed by both parties."
    ))

    story += pdf.signatures(("BUYER:", data.buyer_name), ("SELLER:", data.seller_name))
    return pdf.build(story, "Music Collaboration Agreement")


def generate_guest_release_pdf(data: ContractData) -> bytes:
    """Guest release between the podcaster (seller) and the guest (buyer)."""
    pdf = ContractPDFGenerator(data)

    story = pdf.title("PODCAST GUEST RELEASE FORM")
    story.append(Paragraph(escape(f"Date: {data.created_date}"), pdf.centered_style))
    story.append(Spacer(1, 0.2 * inch))

    story.append(pdf.heading("PARTIES"))
    story.append(pdf.para(
        f"This Guest Release Form (\"Agreement\") is entered into as of {data.created_date} by and between:"
    ))
    story += pdf.party("PODCASTER (Host/Producer):", data.seller_name, data.seller_email)
    story += pdf.party("GUEST:", data.buyer_name, data.buyer_email)

    story.append(pdf.heading("1. GRANT OF RIGHTS"))
    story.append(pdf.para(
        "Guest hereby grants to Podcaster and its successors, licensees, and assigns the irrevocable, "
        "worldwide, perpetual right to record, edit, use, publish, distribute, and exploit Guest's name, "
        "voice, likeness, image, and biographical information (collectively, the \"Appearance\") in "
        "connection with the podcast episode described as:"
    ))
    story.append(pdf.para(f"Topic/Service: {data.service_description}"))
    story.append(pdf.para(
        "This grant includes the right to use the Appearance in any and all media now known or hereafter "
        "devised, including but not limited to audio, video, digital, and print formats, for purposes of "
        "the Podcast, including promotion and advertising thereof."
    ))

    story.append(pdf.heading("2. OWNERSHIP"))
    story.append(pdf.para(
        "Guest acknowledges and agrees that Podcaster shall be the sole and exclusive owner of all rights, "
        "title, and interest in and to the Podcast and the recording of the Appearance, including all "
        "copyrights and other intellectual property rights therein."
    ))

    story.append(pdf.heading("3. COMPENSATION"))
    if float(data.price or 0) > 0:
        story.append(pdf.para(
            f"As consideration for the Appearance and the rights granted herein, Guest has paid Podcaster "
            f"the sum of ${float(data.price):,.2f} USD."
        ))
    else:
        story.append(pdf.para(
            "Guest acknowledges that the publicity and exposure from the Appearance constitute sufficient "
            "consideration for the rights granted herein, and no monetary compensation shall be due to Guest."
        ))

    story.append(pdf.heading("4. RELEASE"))
    story.append(pdf.para(
        "Guest hereby releases and discharges Podcaster from any and all claims, demands, or causes of "
        "action that Guest may have against Podcaster arising out of or in connection with the use of the "
        "Appearance, including but not limited to any claims for defamation, invasion of privacy, or "
        "infringement of publicity rights."
    ))

    story.append(pdf.heading("5. WARRANTIES"))
    story.append(pdf.para(
        "Guest represents and warrants that they have the full right and authority to enter into this "
        "Agreement and to grant the rights granted herein, and that the use of the Appearance will not "
        "violate the rights of any third party."
    ))

    story.append(pdf.heading("6. ENTIRE AGREEMENT"))
    story.append(pdf.para(
        "This Agreement constitutes the entire understanding between the parties with respect to the "
        "subject matter hereof and supersedes all prior agreements and understandings, whether written or oral."
    ))

    story += pdf.signatures(("PODCASTER:", data.seller_name), ("GUEST:", data.buyer_name))
    return pdf.build(story, "Podcast Guest Release Form")
