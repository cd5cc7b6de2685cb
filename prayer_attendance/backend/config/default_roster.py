# Roster used when the device has never synced and nothing is cached yet.
# Replace it through the roster import once the real class lists are available.
DEFAULT_STUDENTS = [
    {"id": "1129", "className": "IX A", "name": "ANISA PUTRI LESTARI", "gender": "P"},
    {"id": "1132", "className": "IX A", "name": "ARIF WICAKSONO", "gender": "L"},
    {"id": "1133", "className": "IX A", "name": "BAYU SAPUTRA", "gender": "L"},
    {"id": "1134", "className": "IX B", "name": "CITRA AYU NINGSIH", "gender": "P"},
    {"id": "1135", "className": "IX B", "name": "DIMAS PRATAMA", "gender": "L"},
    {"id": "1136", "className": "IX C", "name": "FAJAR NUGROHO", "gender": "L"},
    {"id": "1137", "className": "IX C", "name": "INDAH PERMATASARI", "gender": "P"},
    {"id": "1138", "className": "IX D", "name": "JOKO SUSILO", "gender": "L"},
    {"id": "1139", "className": "IX D", "name": "LAILA RAHMAWATI", "gender": "P"},
    {"id": "1140", "className": "IX E", "name": "RIZKI HIDAYAT", "gender": "L"},
]
