from protopack.cli import main

main()
