from speedencode.cli import main

main()
