"""
Static work-item lists for per-area syncs.

The county list is order-stable: checkpoints store the key of the last
settled county and resumption locates that key here. Bump
COUNTY_LIST_VERSION whenever the list changes so that stale checkpoints
are rejected instead of resumed at the wrong position.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from core.exceptions import UnresolvableCheckpointError

TEXAS_STATE_FIPS = "48"
COUNTY_LIST_VERSION = "tx-counties-2020"


@dataclass(frozen=True)
class County:
    fips: str  # three-digit county code within the state
    name: str

    @property
    def label(self) -> str:
        return f"{self.name} County"


@dataclass(frozen=True)
class WorkItem:
    """One fetchable unit, handed by value to a single concurrent task."""
    index: int
    key: str
    label: str
    payload: Any = None


TEXAS_COUNTIES = (
    County("001", "Anderson"),
    County("003", "Andrews"),
    County("005", "Angelina"),
    County("007", "Aransas"),
    County("009", "Archer"),
    County("011", "Armstrong"),
    County("013", "Atascosa"),
    County("015", "Austin"),
    County("017", "Bailey"),
    County("019", "Bandera"),
    County("021", "Bastrop"),
    County("023", "Baylor"),
    County("025", "Bee"),
    County("027", "Bell"),
    County("029", "Bexar"),
    County("031", "Blanco"),
    County("033", "Borden"),
    County("035", "Bosque"),
    County("037", "Bowie"),
    County("039", "Brazoria"),
    County("041", "Brazos"),
    County("043", "Brewster"),
    County("045", "Briscoe"),
    County("047", "Brooks"),
    County("049", "Brown"),
    County("051", "Burleson"),
    County("053", "Burnet"),
    County("055", "Caldwell"),
    County("057", "Calhoun"),
    County("059", "Callahan"),
    County("061", "Cameron"),
    County("063", "Camp"),
    County("065", "Carson"),
    County("067", "Cass"),
    County("069", "Castro"),
    County("071", "Chambers"),
    County("073", "Cherokee"),
    County("075", "Childress"),
    County("077", "Clay"),
    County("079", "Cochran"),
    County("081", "Coke"),
    County("083", "Coleman"),
    County("085", "Collin"),
    County("087", "Collingsworth"),
    County("089", "Colorado"),
    County("091", "Comal"),
    County("093", "Comanche"),
    County("095", "Concho"),
    County("097", "Cooke"),
    County("099", "Coryell"),
    County("101", "Cottle"),
    County("103", "Crane"),
    County("105", "Crockett"),
    County("107", "Crosby"),
    County("109", "Culberson"),
    County("111", "Dallam"),
    County("113", "Dallas"),
    County("115", "Dawson"),
    County("117", "Deaf Smith"),
    County("119", "Delta"),
    County("121", "Denton"),
    County("123", "DeWitt"),
    County("125", "Dickens"),
    County("127", "Dimmit"),
    County("129", "Donley"),
    County("131", "Duval"),
    County("133", "Eastland"),
    County("135", "Ector"),
    County("137", "Edwards"),
    County("139", "Ellis"),
    County("141", "El Paso"),
    County("143", "Erath"),
    County("145", "Falls"),
    County("147", "Fannin"),
    County("149", "Fayette"),
    County("151", "Fisher"),
    County("153", "Floyd"),
    County("155", "Foard"),
    County("157", "Fort Bend"),
    County("159", "Franklin"),
    County("161", "Freestone"),
    County("163", "Frio"),
    County("165", "Gaines"),
    County("167", "Galveston"),
    County("169", "Garza"),
    County("171", "Gillespie"),
    County("173", "Glasscock"),
    County("175", "Goliad"),
    County("177", "Gonzales"),
    County("179", "Gray"),
    County("181", "Grayson"),
    County("183", "Gregg"),
    County("185", "Grimes"),
    County("187", "Guadalupe"),
    County("189", "Hale"),
    County("191", "Hall"),
    County("193", "Hamilton"),
    County("195", "Hansford"),
    County("197", "Hardeman"),
    County("199", "Hardin"),
    County("201", "Harris"),
    County("203", "Harrison"),
    County("205", "Hartley"),
    County("207", "Haskell"),
    County("209", "Hays"),
    County("211", "Hemphill"),
    County("213", "Henderson"),
    County("215", "Hidalgo"),
    County("217", "Hill"),
    County("219", "Hockley"),
    County("221", "Hood"),
    County("223", "Hopkins"),
    County("225", "Houston"),
    County("227", "Howard"),
    County("229", "Hudspeth"),
    County("231", "Hunt"),
    County("233", "Hutchinson"),
    County("235", "Irion"),
    County("237", "Jack"),
    County("239", "Jackson"),
    County("241", "Jasper"),
    County("243", "Jeff Davis"),
    County("245", "Jefferson"),
    County("247", "Jim Hogg"),
    County("249", "Jim Wells"),
    County("251", "Johnson"),
    County("253", "Jones"),
    County("255", "Karnes"),
    County("257", "Kaufman"),
    County("259", "Kendall"),
    County("261", "Kenedy"),
    County("263", "Kent"),
    County("265", "Kerr"),
    County("267", "Kimble"),
    County("269", "King"),
    County("271", "Kinney"),
    County("273", "Kleberg"),
    County("275", "Knox"),
    County("277", "Lamar"),
    County("279", "Lamb"),
    County("281", "Lampasas"),
    County("283", "La Salle"),
    County("285", "Lavaca"),
    County("287", "Lee"),
    County("289", "Leon"),
    County("291", "Liberty"),
    County("293", "Limestone"),
    County("295", "Lipscomb"),
    County("297", "Live Oak"),
    County("299", "Llano"),
    County("301", "Loving"),
    County("303", "Lubbock"),
    County("305", "Lynn"),
    County("307", "McCulloch"),
    County("309", "McLennan"),
    County("311", "McMullen"),
    County("313", "Madison"),
    County("315", "Marion"),
    County("317", "Martin"),
    County("319", "Mason"),
    County("321", "Matagorda"),
    County("323", "Maverick"),
    County("325", "Medina"),
    County("327", "Menard"),
    County("329", "Midland"),
    County("331", "Milam"),
    County("333", "Mills"),
    County("335", "Mitchell"),
    County("337", "Montague"),
    County("339", "Montgomery"),
    County("341", "Moore"),
    County("343", "Morris"),
    County("345", "Motley"),
    County("347", "Nacogdoches"),
    County("349", "Navarro"),
    County("351", "Newton"),
    County("353", "Nolan"),
    County("355", "Nueces"),
    County("357", "Ochiltree"),
    County("359", "Oldham"),
    County("361", "Orange"),
    County("363", "Palo Pinto"),
    County("365", "Panola"),
    County("367", "Parker"),
    County("369", "Parmer"),
    County("371", "Pecos"),
    County("373", "Polk"),
    County("375", "Potter"),
    County("377", "Presidio"),
    County("379", "Rains"),
    County("381", "Randall"),
    County("383", "Reagan"),
    County("385", "Real"),
    County("387", "Red River"),
    County("389", "Reeves"),
    County("391", "Refugio"),
    County("393", "Roberts"),
    County("395", "Robertson"),
    County("397", "Rockwall"),
    County("399", "Runnels"),
    County("401", "Rusk"),
    County("403", "Sabine"),
    County("405", "San Augustine"),
    County("407", "San Jacinto"),
    County("409", "San Patricio"),
    County("411", "San Saba"),
    County("413", "Schleicher"),
    County("415", "Scurry"),
    County("417", "Shackelford"),
    County("419", "Shelby"),
    County("421", "Sherman"),
    County("423", "Smith"),
    County("425", "Somervell"),
    County("427", "Starr"),
    County("429", "Stephens"),
    County("431", "Sterling"),
    County("433", "Stonewall"),
    County("435", "Sutton"),
    County("437", "Swisher"),
    County("439", "Tarrant"),
    County("441", "Taylor"),
    County("443", "Terrell"),
    County("445", "Terry"),
    County("447", "Throckmorton"),
    County("449", "Titus"),
    County("451", "Tom Green"),
    County("453", "Travis"),
    County("455", "Trinity"),
    County("457", "Tyler"),
    County("459", "Upshur"),
    County("461", "Upton"),
    County("463", "Uvalde"),
    County("465", "Val Verde"),
    County("467", "Van Zandt"),
    County("469", "Victoria"),
    County("471", "Walker"),
    County("473", "Waller"),
    County("475", "Ward"),
    County("477", "Washington"),
    County("479", "Webb"),
    County("481", "Wharton"),
    County("483", "Wheeler"),
    County("485", "Wichita"),
    County("487", "Wilbarger"),
    County("489", "Willacy"),
    County("491", "Williamson"),
    County("493", "Wilson"),
    County("495", "Winkler"),
    County("497", "Wise"),
    County("499", "Wood"),
    County("501", "Yoakum"),
    County("503", "Young"),
    County("505", "Zapata"),
    County("507", "Zavala"),
)


def county_work_items(
    counties: Sequence[County] = TEXAS_COUNTIES,
    start_index: int = 0
) -> List[WorkItem]:
    """Work items for every county from ``start_index`` onwards."""
    return [
        WorkItem(index=i, key=county.fips, label=county.label, payload=county)
        for i, county in enumerate(counties)
        if i >= start_index
    ]


def resume_index(
    counties: Sequence[County],
    last_completed_key: Optional[str]
) -> int:
    """
    Index of the first county still to fetch after ``last_completed_key``.

    Raises:
        UnresolvableCheckpointError: If the key is not in the list
    """
    if last_completed_key is None:
        return 0

    for i, county in enumerate(counties):
        if county.fips == last_completed_key:
            return i + 1

    raise UnresolvableCheckpointError(
        f"Checkpoint position {last_completed_key!r} is not in the county list",
        context={
            "last_completed_entity": last_completed_key,
            "county_count": len(counties),
        }
    )
