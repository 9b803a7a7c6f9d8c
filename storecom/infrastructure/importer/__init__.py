from .store_sheet_parser import SUPPORTED_EXTENSIONS, SheetImportError, StoreSheetParser
