from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from PHARMABASE.server.database.database import DrugBankDatabase  # noqa: E402
from PHARMABASE.server.utils.configurations.server import (  # noqa: E402
    build_ingestion_settings,
)
from PHARMABASE.server.utils.updater.drugbank import DrugBankDatabaseBuilder  # noqa: E402

# Six distinct drugs plus a duplicate of DB00001 and a record without any
# identifier. The pathway of DB00001 nests <drug> elements without a type.
SAMPLE_EXPORT = """<?xml version="1.0" encoding="UTF-8"?>
<drugbank xmlns="http://www.drugbank.ca" version="5.1" exported-on="2024-01-03">
  <drug type="small molecule" created="2005-06-13" updated="2024-01-02">
    <drugbank-id primary="true">DB00001</drugbank-id>
    <drugbank-id>APRD00264</drugbank-id>
    <name>Aspirin</name>
    <description>Salicylate analgesic used for pain and fever.</description>
    <cas-number>50-78-2</cas-number>
    <unii>R16CO5Y76E</unii>
    <state>solid</state>
    <groups>
      <group>approved</group>
      <group>vet_approved</group>
    </groups>
    <indication>Relief of mild pain and prevention of myocardial infarction.</indication>
    <half-life>4-5 hours</half-life>
    <average-mass>180.1574</average-mass>
    <monoisotopic-mass>180.042258744</monoisotopic-mass>
    <salts>
      <salt>
        <drugbank-id primary="true">DBSALT000001</drugbank-id>
        <name>Aspirin lysine</name>
        <unii>2JJ274J145</unii>
        <cas-number>62952-06-1</cas-number>
        <inchikey>JJBCTCGUOQYZHK-ZSCHJXSPSA-N</inchikey>
        <average-mass>326.345</average-mass>
      </salt>
    </salts>
    <synonyms>
      <synonym language="english" coder="">Acetylsalicylic acid</synonym>
      <synonym language="english" coder="">ASA</synonym>
    </synonyms>
    <products>
      <product>
        <name>Bayer Aspirin</name>
        <labeller>Bayer HealthCare</labeller>
        <dosage-form>Tablet</dosage-form>
        <strength>325 mg/1</strength>
        <route>Oral</route>
        <generic>false</generic>
        <over-the-counter>true</over-the-counter>
        <approved>true</approved>
        <country>US</country>
        <source>FDA NDC</source>
      </product>
      <product>
        <name>Aspirin EC</name>
        <labeller>Pharmascience Inc</labeller>
        <dpd-id>02284294</dpd-id>
        <country>Canada</country>
        <source>DPD</source>
      </product>
    </products>
    <categories>
      <category>
        <category>Anti-Inflammatory Agents, Non-Steroidal</category>
        <mesh-id>D000894</mesh-id>
      </category>
      <category>
        <category>Platelet Aggregation Inhibitors</category>
        <mesh-id>D010975</mesh-id>
      </category>
      <category>
        <category>Blood and Blood Forming Organs</category>
        <mesh-id></mesh-id>
      </category>
    </categories>
    <atc-codes>
      <atc-code code="B01AC06">
        <level code="B01AC">Platelet aggregation inhibitors excl. heparin</level>
      </atc-code>
      <atc-code code="N02BA01">
        <level code="N02BA">Salicylic acid and derivatives</level>
      </atc-code>
    </atc-codes>
    <food-interactions>
      <food-interaction>Take with food.</food-interaction>
    </food-interactions>
    <drug-interactions>
      <drug-interaction>
        <drugbank-id>DB00002</drugbank-id>
        <name>Warfarin</name>
        <description>Aspirin may increase the anticoagulant activities of Warfarin.</description>
      </drug-interaction>
    </drug-interactions>
    <pathways>
      <pathway>
        <smpdb-id>SMP0000083</smpdb-id>
        <name>Aspirin Action Pathway</name>
        <category>drug_action</category>
        <drugs>
          <drug>
            <drugbank-id>DB00001</drugbank-id>
            <name>Aspirin</name>
          </drug>
          <drug>
            <drugbank-id>DB00099</drugbank-id>
            <name>Arachidonic acid</name>
          </drug>
        </drugs>
        <enzymes>
          <uniprot-id>P23219</uniprot-id>
          <uniprot-id>P35354</uniprot-id>
        </enzymes>
      </pathway>
    </pathways>
    <calculated-properties>
      <property>
        <kind>SMILES</kind>
        <value>CC(=O)OC1=CC=CC=C1C(O)=O</value>
        <source>ChemAxon</source>
      </property>
      <property>
        <kind>InChI</kind>
        <value>InChI=1S/C9H8O4/c1-6(10)13-8-5-3-2-4-7(8)9(11)12/h2-5H,1H3,(H,11,12)</value>
        <source>ChemAxon</source>
      </property>
      <property>
        <kind>InChIKey</kind>
        <value>BSYNRYMUTXBXSQ-UHFFFAOYSA-N</value>
        <source>ChemAxon</source>
      </property>
    </calculated-properties>
    <external-identifiers>
      <external-identifier>
        <resource>ChEBI</resource>
        <identifier>15365</identifier>
      </external-identifier>
      <external-identifier>
        <resource>PubChem Compound</resource>
        <identifier>2244</identifier>
      </external-identifier>
    </external-identifiers>
    <targets>
      <target position="1">
        <id>BE0000017</id>
        <name>Prostaglandin G/H synthase 1</name>
        <organism>Humans</organism>
        <actions>
          <action>inhibitor</action>
        </actions>
        <known-action>yes</known-action>
      </target>
      <target position="2">
        <id>BE0000262</id>
        <name>Prostaglandin G/H synthase 2</name>
        <organism>Humans</organism>
        <actions>
          <action>inhibitor</action>
        </actions>
        <known-action>yes</known-action>
      </target>
    </targets>
  </drug>
  <drug type="small molecule" created="2005-06-13" updated="2024-01-02">
    <drugbank-id>APRD00110</drugbank-id>
    <drugbank-id primary="true">DB00002</drugbank-id>
    <name>Warfarin</name>
    <description>Coumarin anticoagulant.</description>
    <cas-number>81-81-2</cas-number>
    <state>solid</state>
    <groups>
      <group>approved</group>
    </groups>
    <indication>Prophylaxis and treatment of venous thrombosis.</indication>
    <half-life>25 ± 10 hours</half-life>
    <categories>
      <category>
        <category>Anticoagulants</category>
        <mesh-id>D000925</mesh-id>
      </category>
      <category>
        <category>Blood and Blood Forming Organs</category>
        <mesh-id></mesh-id>
      </category>
    </categories>
    <atc-codes>
      <atc-code code="B01AA03">
        <level code="B01AA">Vitamin K antagonists</level>
      </atc-code>
    </atc-codes>
    <targets>
      <target position="1">
        <id>BE0000496</id>
        <name>Vitamin K epoxide reductase complex subunit 1</name>
        <organism>Humans</organism>
        <actions>
          <action>inhibitor</action>
        </actions>
        <known-action>yes</known-action>
      </target>
    </targets>
    <carriers>
      <carrier position="1">
        <id>BE0000530</id>
        <name>Serum albumin</name>
        <organism>Humans</organism>
        <known-action>unknown</known-action>
      </carrier>
    </carriers>
    <transporters>
      <transporter position="1">
        <id>BE0001032</id>
        <name>ATP-binding cassette sub-family B member 1</name>
        <organism>Humans</organism>
        <actions>
          <action>substrate</action>
        </actions>
        <known-action>unknown</known-action>
      </transporter>
    </transporters>
  </drug>
  <drug type="small molecule" created="2005-06-13" updated="2024-01-02">
    <drugbank-id primary="true">DB00003</drugbank-id>
    <name>Ibuprofen</name>
    <description>Propionic acid derivative with analgesic properties.</description>
    <cas-number>15687-27-1</cas-number>
    <state>solid</state>
    <groups>
      <group>approved</group>
    </groups>
    <indication>Relief of pain, fever and inflammation.</indication>
    <half-life>Approximately 6 hours</half-life>
    <categories>
      <category>
        <category>Anti-Inflammatory Agents, Non-Steroidal</category>
        <mesh-id>D000894</mesh-id>
      </category>
    </categories>
    <atc-codes>
      <atc-code code="M01AE01">
        <level code="M01AE">Propionic acid derivatives</level>
      </atc-code>
    </atc-codes>
    <targets>
      <target position="1">
        <id>BE0000017</id>
        <name>Prostaglandin G/H synthase 1</name>
        <organism>Humans</organism>
        <known-action>yes</known-action>
      </target>
      <target position="2">
        <id>BE0000262</id>
        <name>Prostaglandin G/H synthase 2</name>
        <organism>Humans</organism>
        <known-action>yes</known-action>
      </target>
    </targets>
    <carriers>
      <carrier position="1">
        <id>BE0000530</id>
        <name>Serum albumin</name>
        <organism>Humans</organism>
        <known-action>unknown</known-action>
      </carrier>
    </carriers>
  </drug>
  <drug type="small molecule" created="2005-06-13" updated="2024-01-02">
    <drugbank-id primary="true">DB00001</drugbank-id>
    <name>Aspirin (duplicate entry)</name>
  </drug>
  <drug type="small molecule" created="2005-06-13" updated="2024-01-02">
    <name>Record without identifier</name>
  </drug>
  <drug type="biotech" created="2017-12-01" updated="2024-01-02">
    <drugbank-id primary="true">DB00004</drugbank-id>
    <name>Semaglutide</name>
    <description>GLP-1 analogue for type 2 diabetes.</description>
    <groups>
      <group>approved</group>
      <group>investigational</group>
    </groups>
    <indication>Glycemic control in adults with type 2 diabetes mellitus.</indication>
    <half-life>Approximately 1 week</half-life>
    <categories>
      <category>
        <category>Incretins</category>
        <mesh-id>D054795</mesh-id>
      </category>
    </categories>
    <atc-codes>
      <atc-code code="A10BJ06">
        <level code="A10BJ">Glucagon-like peptide-1 (GLP-1) analogues</level>
      </atc-code>
    </atc-codes>
    <targets>
      <target position="1">
        <id>BE0000483</id>
        <name>Glucagon like peptide 1 receptor</name>
        <organism>Humans</organism>
        <actions>
          <action>agonist</action>
        </actions>
        <known-action>yes</known-action>
      </target>
    </targets>
  </drug>
  <drug type="biotech" created="2017-12-01" updated="2024-01-02">
    <drugbank-id primary="true">DB00005</drugbank-id>
    <name>Dulaglutide</name>
    <description>Long acting GLP-1 receptor agonist.</description>
    <groups>
      <group>approved</group>
    </groups>
    <indication>Adjunct to diet and exercise in type 2 diabetes.</indication>
    <half-life>5 days</half-life>
    <categories>
      <category>
        <category>Incretins</category>
        <mesh-id>D054795</mesh-id>
      </category>
    </categories>
    <atc-codes>
      <atc-code code="A10BJ05">
        <level code="A10BJ">Glucagon-like peptide-1 (GLP-1) analogues</level>
      </atc-code>
    </atc-codes>
    <targets>
      <target position="1">
        <id>BE0000483</id>
        <name>Glucagon like peptide 1 receptor</name>
        <organism>Humans</organism>
        <known-action>yes</known-action>
      </target>
    </targets>
  </drug>
  <drug type="small molecule" created="2020-01-01" updated="2024-01-02">
    <drugbank-id primary="true">DB00006</drugbank-id>
    <name>Mystery compound</name>
    <half-life>Not Available</half-life>
  </drug>
</drugbank>
"""


# -----------------------------------------------------------------------------
def write_export(path: Path, content: str = SAMPLE_EXPORT) -> str:
    path.write_text(content, encoding="utf-8")
    return str(path)


# -----------------------------------------------------------------------------
def build_store(source: str, db_path: str) -> DrugBankDatabaseBuilder:
    builder = DrugBankDatabaseBuilder(
        db_path,
        ingestion_settings=build_ingestion_settings({"show_progress_bar": False}),
    )
    builder.build_database(source)
    return builder


###############################################################################
@pytest.fixture(scope="session")
def sample_export(tmp_path_factory: pytest.TempPathFactory) -> str:
    return write_export(tmp_path_factory.mktemp("sources") / "full database.xml")


@pytest.fixture(scope="session")
def drugbank_store(sample_export: str, tmp_path_factory: pytest.TempPathFactory) -> str:
    db_path = str(tmp_path_factory.mktemp("store") / "drugbank.db")
    build_store(sample_export, db_path)
    return db_path


@pytest.fixture()
def database(drugbank_store: str) -> Iterator[DrugBankDatabase]:
    handle = DrugBankDatabase(drugbank_store)
    try:
        yield handle
    finally:
        handle.close()
